"""
Errors, warnings and input checks for quantext.

Every public function validates its DataFrame arguments before handing
them to polars, spaCy or scikit-learn, so a table passed to the wrong
step fails with a message naming the step that produces the right one.

Errors raised by those libraries themselves (a failed download, a
missing spaCy model, a scikit-learn ValueError) are not wrapped and
reach the caller unchanged.

Example:
    Catching every quantext error at once::

        import quantext as qt
        from quantext.validation import QuantextError

        try:
            dtm = qt.tokens_dtm(corpus)
        except QuantextError as e:
            print(e)  # explains that tokenize() must run first

.. codeauthor:: quantext developers
"""

import warnings
from typing import Dict, List, Union
from pathlib import Path
import polars as pl


class QuantextError(Exception):
    """Base class of the errors raised by quantext's own checks."""

    pass


class CorpusValidationError(QuantextError):
    """
    Raised when a corpus cannot be tokenized.

    A corpus needs non-null, unique String ``doc_id`` values and a String
    ``text`` column; any other column is treated as a document variable.

    Example:
        >>> validate_corpus_dataframe(pl.DataFrame({'texts': ['Fellow citizens']}))
        CorpusValidationError: Invalid corpus DataFrame schema...
    """

    pass


class ModelValidationError(QuantextError):
    """Raised for a spaCy pipeline without a needed component, or an unfitted model."""

    pass


class DataFormatError(QuantextError):
    """Raised when a tokens table, dtm or frequency table has the wrong shape."""

    pass


class ParameterValidationError(QuantextError):
    pass


class FileSystemError(QuantextError):
    """Raised when a corpus folder or file cannot be read."""

    pass


class ValidationWarning(UserWarning):
    """Issued for input that is usable but probably not what was meant."""

    pass


class PerformanceWarning(UserWarning):
    pass


def validate_corpus_dataframe(corp: pl.DataFrame, context: str = "") -> None:
    """
    Validation of a corpus DataFrame.

    A corpus needs String 'doc_id' and 'text' columns. Any further
    columns are document variables and are left alone.

    :param corp: DataFrame to validate
    :param context: Context for error messages (e.g., "in tokenize")
    """
    if corp is None:
        raise CorpusValidationError(
            f"Corpus is None {context}. Load one with readtext_table() "
            "or corpus_from_folder()."
        )

    if corp.height == 0:
        raise CorpusValidationError(f"Corpus is empty {context}: it has no documents.")

    schema = corp.collect_schema()
    problems = []
    for col in ("doc_id", "text"):
        if col not in schema:
            problems.append(f"  missing column '{col}'")
        elif schema[col] != pl.String:
            problems.append(f"  '{col}' is {schema[col]}, expected String")

    if problems:
        message = f"Invalid corpus DataFrame schema {context}:\n"
        message += "\n".join(problems)
        if "texts" in schema and "text" not in schema:
            message += "\nTip: pass text_field='texts' to readtext_table()."
        raise CorpusValidationError(message)

    doc_ids = corp.get_column("doc_id")
    if doc_ids.null_count() > 0:
        raise CorpusValidationError(
            f"{doc_ids.null_count()} documents have no doc_id {context}."
        )

    duplicated = doc_ids.filter(doc_ids.is_duplicated()).unique(maintain_order=True)
    if duplicated.len() > 0:
        raise CorpusValidationError(
            f"Duplicate doc_id values {context}: "
            f"{', '.join(duplicated.head(5).to_list())}"
            f"{' ...' if duplicated.len() > 5 else ''}\n"
            "Use docid_field in readtext_table() only for a column of unique ids."
        )

    texts = corp.get_column("text")
    if texts.null_count() > 0:
        warnings.warn(
            f"{texts.null_count()} documents have null text {context} "
            "and will be skipped.",
            ValidationWarning,
        )

    n_empty = texts.drop_nulls().str.strip_chars().eq("").sum()
    if n_empty > 0:
        warnings.warn(
            f"{n_empty} documents have empty text {context} "
            "and will not contribute any tokens.",
            ValidationWarning,
        )


def validate_tokens_dataframe(tokens_table: pl.DataFrame, context: str = "") -> None:
    """
    Validation of a tokens table.

    :param tokens_table: DataFrame to validate
    :param context: Context for error messages
    """
    if tokens_table is None:
        raise DataFormatError(
            f"Tokens DataFrame is None {context}. "
            "Expected a DataFrame produced by tokenize()."
        )

    expected_schema = {
        "doc_id": pl.String,
        "token_id": pl.UInt32,
        "token": pl.String,
    }

    actual_schema = dict(tokens_table.collect_schema())

    if actual_schema != expected_schema:
        missing_cols = [col for col in expected_schema if col not in actual_schema]

        error_msg = f"Invalid tokens DataFrame schema {context}.\n"

        if missing_cols:
            error_msg += f"Missing columns: {', '.join(missing_cols)}\n"

        error_msg += (
            "Expected a DataFrame produced by tokenize() with columns: "
            "doc_id (String), token_id (UInt32), token (String)"
        )

        if "text" in actual_schema:
            error_msg += "\n\nTip: This looks like a corpus, use tokenize() first."

        raise DataFormatError(error_msg)


def validate_dtm(dtm: pl.DataFrame, context: str = "") -> None:
    """
    Validation of a document-term matrix.

    :param dtm: A DataFrame with 'doc_id' as the first column
        and numeric feature columns
    :param context: Context for error messages
    """
    if dtm is None:
        raise DataFormatError(
            f"Document-term matrix is None {context}. "
            "Expected a DataFrame produced by tokens_dtm()."
        )

    if dtm.width == 0 or dtm.columns[0] != "doc_id":
        raise DataFormatError(
            f"Invalid document-term matrix {context}. "
            "Expected a DataFrame produced by tokens_dtm() "
            "with 'doc_id' as the first column."
        )

    schema = dtm.collect_schema()
    non_numeric = [
        col for col, dtype in schema.items()
        if col != "doc_id" and not dtype.is_numeric()
    ]
    if non_numeric:
        raise DataFormatError(
            f"Invalid document-term matrix {context}. "
            "All columns except 'doc_id' must be numeric, found: "
            f"{', '.join(non_numeric[:5])}\n"
            "Tip: document variables belong in a separate docvars table."
        )


def validate_directory_path(directory: Union[str, Path], context: str = "") -> Path:
    """
    Check that a folder of text files exists.

    :param directory: The folder holding the corpus
    :param context: Context for error messages
    :return: The folder as a Path
    """
    if directory is None or str(directory).strip() == "":
        raise FileSystemError(f"No corpus folder given {context}.")

    path = Path(directory)

    if path.is_file():
        raise FileSystemError(
            f"Expected a folder of .txt files {context}, got a file: {path}\n"
            "Use readtext_table() to read a single delimited file."
        )

    if not path.is_dir():
        hint = ""
        if path.parent.is_dir():
            siblings = sorted(
                d.name
                for d in path.parent.iterdir()
                if d.is_dir() and d.name.lower().startswith(path.name[:3].lower())
            )
            if siblings:
                hint = f"\nDid you mean: {', '.join(siblings[:3])}?"
        raise FileSystemError(f"Corpus folder not found {context}: {path}{hint}")

    return path


def validate_text_files_in_directory(directory: Path, context: str = "") -> List[Path]:
    """Return the .txt files of a folder, or explain why there are none."""
    text_files = sorted(directory.glob("*.txt"))
    if text_files:
        return text_files

    entries = [f for f in directory.iterdir() if f.is_file()]
    tabular = [f.name for f in entries if f.suffix.lower() in (".csv", ".tsv")]

    message = f"No .txt files in {directory} {context}."
    if tabular:
        message += (
            f"\nFound delimited files ({', '.join(tabular[:3])}); "
            "read them with readtext_table() and a text_field."
        )
    elif entries:
        message += f"\nThe folder holds {len(entries)} other files."
    else:
        message += "\nThe folder is empty."
    raise FileSystemError(message)


def validate_choice_parameter(
    name: str, value: str, valid_types: List[str], context: str = ""
) -> None:
    """
    Validate an enumerated parameter with helpful suggestions.

    :param name: Parameter name used in the message
    :param value: Parameter value to validate
    :param valid_types: List of valid values
    :param context: Context for error messages
    """
    if value in valid_types:
        return

    suggestions = []
    text_value = str(value)
    if text_value.lower() in [v.lower() for v in valid_types]:
        suggestions = [v for v in valid_types if v.lower() == text_value.lower()]
    elif text_value:
        for valid_type in valid_types:
            if text_value.startswith(valid_type[:2]) or valid_type.startswith(
                text_value[:2]
            ):
                suggestions.append(valid_type)

    error_msg = f"Invalid {name} parameter {context}: '{value}'\n"
    error_msg += f"Valid options are: {', '.join(valid_types)}"

    if suggestions:
        error_msg += f"\nDid you mean: {', '.join(suggestions)}?"

    raise ParameterValidationError(error_msg)


def validate_span_parameter(span: int, context: str = "") -> None:
    """
    Validate span parameter for n-grams.

    :param span: Span value to validate
    :param context: Context for error messages
    """
    if not isinstance(span, int) or isinstance(span, bool):
        raise ParameterValidationError(
            f"Span must be an integer {context}, got {type(span).__name__}: {span}"
        )

    if span < 2:
        raise ParameterValidationError(
            f"Span must be at least 2 {context}, got {span}. "
            "Use span=2 for bigrams, span=3 for trigrams, etc."
        )

    if span > 5:
        if span > 10:
            raise ParameterValidationError(
                f"Span too large {context}: {span}. "
                "Maximum supported span is 10, but values > 5 are not recommended."
            )

        warnings.warn(
            f"Large span value ({span}) {context} may result in very sparse data. "
            "Consider using span <= 5 for better results.",
            ValidationWarning,
        )


def validate_frequency_tables(
    target: pl.DataFrame,
    reference: pl.DataFrame,
    context: str = "",
) -> None:
    """
    Validate frequency tables for keyness analysis.

    :param target: Target frequency table
    :param reference: Reference frequency table
    :param context: Context for error messages
    """
    if target is None or reference is None:
        raise DataFormatError(
            f"Frequency tables cannot be None {context}. "
            "Please provide valid frequency tables from frequency_table()."
        )

    if target.height == 0 or reference.height == 0:
        raise DataFormatError(
            f"Frequency tables cannot be empty {context}. "
            "Please ensure both tables contain data."
        )

    expected_cols = ["Token", "AF", "RF", "Range"]

    for label, table in (("Target", target), ("Reference", reference)):
        missing = [col for col in expected_cols if col not in table.columns]
        if missing:
            raise DataFormatError(
                f"{label} frequency table missing columns {context}: "
                f"{', '.join(missing)}\n"
                f"Expected columns: {', '.join(expected_cols)}\n"
                "Please use frequency_table() to generate the table."
            )

        if table.get_column("AF").sum() == 0:
            warnings.warn(
                f"{label} frequency table has zero total frequency {context}. "
                "This may indicate a data processing issue.",
                ValidationWarning,
            )


def validate_dictionary(dictionary: Dict[str, List[str]], context: str = "") -> None:
    """
    Validate a lookup dictionary of ``{key: [patterns]}``.

    :param dictionary: Mapping of category names to pattern lists
    :param context: Context for error messages
    """
    if not isinstance(dictionary, dict) or len(dictionary) == 0:
        raise ParameterValidationError(
            f"Dictionary must be a non-empty dict {context}, "
            "e.g. {'economy': ['job*', 'econom*']}."
        )

    for key, patterns in dictionary.items():
        if not isinstance(key, str) or key == "doc_id":
            raise ParameterValidationError(
                f"Invalid dictionary key {context}: {key!r}. "
                "Keys must be strings other than 'doc_id'."
            )
        if isinstance(patterns, str):
            continue
        if len(patterns) == 0 or not all(isinstance(p, str) for p in patterns):
            raise ParameterValidationError(
                f"Dictionary entry '{key}' {context} must be a pattern string "
                "or a non-empty list of pattern strings."
            )


def suggest_alternatives_for_empty_results(operation: str, **kwargs):
    """Provide suggestions when operations return empty results."""
    suggestions = []

    if operation == "ngrams":
        min_freq = kwargs.get("min_frequency", 2)
        if min_freq > 1:
            suggestions.append(f"Try reducing min_frequency (currently {min_freq})")

        span = kwargs.get("span", 2)
        if span > 3:
            suggestions.append(f"Try using a smaller span (currently {span})")

    elif operation == "kwic":
        pattern = kwargs.get("pattern", "")
        if pattern:
            suggestions.append(f"Check if '{pattern}' exists in your tokens")
            suggestions.append("Try a glob pattern such as 'terror*'")

    elif operation == "dtm_trim":
        suggestions.append("Try lowering min_termfreq or min_docfreq")

    elif operation == "keyness":
        threshold = kwargs.get("threshold")
        if threshold is not None:
            suggestions.append(f"Try raising the p-value threshold (currently {threshold})")

    if suggestions:
        warning_msg = f"No results found for {operation}. Suggestions:\n"
        warning_msg += "\n".join(f"- {s}" for s in suggestions)
        warnings.warn(warning_msg, ValidationWarning)
