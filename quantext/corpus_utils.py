"""
Utility functions for loading corpora and reshaping document-term matrices.

.. codeauthor:: quantext developers
"""

import io
import math
import os
import re
import polars as pl
import requests
from typing import List, Optional, Tuple, Union
from pathlib import Path
from scipy.sparse import coo_matrix

from .config import CONFIG
from .validation import (
    DataFormatError,
    FileSystemError,
    validate_choice_parameter,
    validate_corpus_dataframe,
    validate_directory_path,
    validate_dtm,
    validate_text_files_in_directory,
)


def get_text_paths(directory: str,
                   recursive=False) -> List:
    """
    Gets a list of full paths for all text files in the given directory.

    :param directory: A string represting a path to directory.
    :param recursive: Whether or not to \
        recursively search through subdirectories.
    :return: A list of paths to plain text (TXT) files.
    """
    full_paths = []
    if recursive is True:
        for root, dirs, files in os.walk(directory):
            for file in files:
                if file.endswith('.txt'):
                    full_paths.append(os.path.join(root, file))
    else:
        for file in Path(directory).glob("*.txt"):
            full_paths.append(str(file))
    return full_paths


def readtext(paths: List) -> pl.DataFrame:
    """
    Read in text (TXT) files from a list of paths \
        into a polars DataFrame with 'doc_id' and 'text' columns.

    :param paths: A list of strings representing \
        paths to plain text (TXT) files.
    :return: A polars DataFrame with 'doc_id' and 'text' columns.
    """
    doc_ids = [os.path.basename(path) for path in paths]
    texts = [Path(path).read_text(encoding="utf-8") for path in paths]
    df = pl.DataFrame({
        "doc_id": doc_ids,
        "text": texts
    }, schema={"doc_id": pl.String, "text": pl.String})
    df = (
        df
        .with_columns(
            pl.col("text").str.strip_chars()
        )
        .sort("doc_id", descending=False)
    )
    return df


def corpus_from_folder(directory: str) -> pl.DataFrame:
    """
    A convenience function combining get_text_paths and readtext.

    :param directory: A string representing the path \
        to a directory of text (TXT) files to be processed.
    :return: A polars DataFrame with 'doc_id' and 'text' columns.
    """
    path = validate_directory_path(directory, "in corpus_from_folder")
    validate_text_files_in_directory(path, "in corpus_from_folder")
    text_files = get_text_paths(str(path))
    return readtext(text_files)


def _fetch_source(source: str) -> Union[io.BytesIO, Path]:
    """Download a URL once, or resolve a local path."""
    if source.startswith(("http://", "https://")):
        response = requests.get(source, timeout=CONFIG.HTTP_TIMEOUT)
        response.raise_for_status()
        return io.BytesIO(response.content)

    path = Path(source)
    if not path.is_file():
        raise FileSystemError(
            f"File does not exist in readtext_table: {path}\n"
            "Please provide a path to a delimited file or an http(s) URL."
        )
    return path


def readtext_table(source: Union[str, Path],
                   text_field: str = "text",
                   docid_field: Optional[str] = None,
                   separator: str = ",") -> pl.DataFrame:
    """
    Read a delimited file (CSV, TSV) into a corpus DataFrame.

    The source may be a local path or an http(s) URL; URLs are fetched
    a single time with ``requests`` and any HTTP error is raised as-is.
    Columns other than the text and document id fields are kept as
    document variables after 'doc_id' and 'text'. A leftover column
    already named 'doc_id' or 'text' is kept as 'doc_id_docvar' or
    'text_docvar'.

    :param source: A path or URL to a delimited text file.
    :param text_field: The name of the column holding the texts.
    :param docid_field: The name of the column holding document names. \
        If None, documents are named 'text1', 'text2', ...
    :param separator: The field separator of the file.
    :return: A polars DataFrame with 'doc_id', 'text' \
        and document variable columns.
    """
    data = _fetch_source(str(source))
    df = pl.read_csv(data, separator=separator, infer_schema_length=10000)

    for label, field in (("text_field", text_field), ("docid_field", docid_field)):
        if field is not None and field not in df.columns:
            raise DataFormatError(
                f"Column '{field}' given as {label} not found in {source}.\n"
                f"Available columns: {', '.join(df.columns)}"
            )

    if docid_field is None:
        doc_ids = pl.concat_str(
            [pl.lit("text"), pl.int_range(1, pl.len() + 1).cast(pl.String)]
        )
    else:
        doc_ids = pl.col(docid_field).cast(pl.String)

    base = df.select(
        doc_ids.alias("doc_id"),
        pl.col(text_field).cast(pl.String).alias("text"),
    )
    docvars = df.drop(
        list(dict.fromkeys(col for col in (text_field, docid_field) if col is not None))
    )
    docvars = docvars.rename(
        {col: f"{col}_docvar" for col in ("doc_id", "text") if col in docvars.columns}
    )

    corpus = pl.concat([base, docvars], how="horizontal")
    validate_corpus_dataframe(corpus, "in readtext_table")
    return corpus


def corpus_docvars(corp: pl.DataFrame) -> pl.DataFrame:
    """
    Return the document variables of a corpus.

    :param corp: A corpus DataFrame.
    :return: A polars DataFrame with 'doc_id' \
        and every column other than 'text'.
    """
    validate_corpus_dataframe(corp, "in corpus_docvars")
    return corp.drop("text")


def dtm_weight(dtm: pl.DataFrame,
               scheme="prop") -> pl.DataFrame:
    """
    A function for weighting a document-term-matrix.

    :param dtm: A document-term-matrix with a 'doc_id' column.
    :param scheme: One of 'count' (unchanged), \
        'prop' (normalized by totals per document), \
        'boolean' (1 if the feature occurs), \
        'tfidf' (counts times log10 of N over document frequency), \
            or 'scale' (z-scores of proportions; a feature with \
            the same proportion in every document scores 0).
    :return: A polars DataFrame of weighted values.
    """
    validate_dtm(dtm, "in dtm_weight")

    scheme_types = ['count', 'prop', 'boolean', 'tfidf', 'scale']
    validate_choice_parameter("scheme", scheme, scheme_types, "in dtm_weight")

    if scheme == "count" or dtm.width == 1:
        return dtm

    if scheme == "boolean":
        return dtm.with_columns(
            pl.selectors.numeric().gt(0).cast(pl.UInt32)
        )

    if scheme == "tfidf":
        n_docs = dtm.height
        docfreq = dtm.select(
            pl.selectors.numeric().gt(0).sum()
        ).row(0, named=True)
        # a feature in every document gets idf 0, as does one in none
        return dtm.with_columns(
            [
                pl.col(col).mul(math.log10(n_docs / df) if df > 0 else 0.0)
                for col, df in docfreq.items()
            ]
        )

    weighted_df = (
        dtm
        .with_columns(
            pl.selectors.numeric()
            .truediv(
                pl.sum_horizontal(
                    pl.selectors.numeric()
                )
            )
        )
        # empty documents
        .with_columns(pl.selectors.numeric().fill_nan(0.0))
    )

    if scheme == "prop":
        return weighted_df

    spread = weighted_df.select(pl.selectors.numeric().std()).row(0, named=True)
    # constant features have no spread to scale
    return weighted_df.with_columns(
        [
            pl.col(col).sub(pl.col(col).mean()).truediv(sd)
            if sd is not None and sd > 1e-12 else pl.lit(0.0).alias(col)
            for col, sd in spread.items()
        ]
    )


def dtm_to_coo(dtm: pl.DataFrame) -> Tuple[coo_matrix, List[str], List[str]]:
    """
    A function for converting a dtm to a COOrdinate format.

    :param dtm: A document-term-matrix with a doc_id column
    :return: A COOrdinate format matrix, \
        an index of document ids, \
            and a list of variable names.
    """
    validate_dtm(dtm, "in dtm_to_coo")
    docs = dtm["doc_id"].to_list()
    vocab = dtm.drop("doc_id").columns
    matrix_values = dtm.drop("doc_id").to_numpy()
    coo_sparse_matrix = coo_matrix(matrix_values)
    return coo_sparse_matrix, docs, vocab


# re.escape is limited to these so the result also compiles in polars' Rust regex
_REGEX_META = set("\\.+*?()|[]{}^$#&-~")


def _escape(text: str) -> str:
    return "".join(re.escape(char) if char in _REGEX_META else char for char in text)


def _glob_to_regex(pattern: str) -> str:
    parts = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(_escape(char))
    return "".join(parts)


def pattern_to_regex(patterns: Union[str, List[str]],
                     valuetype: str = "glob",
                     case_insensitive: bool = True) -> str:
    """
    Combine one or more search patterns into a single regular expression.

    The result is valid both for Python's ``re`` module and for polars
    string expressions, so the same pattern can filter DataFrame rows
    and DataFrame column names.

    :param patterns: A pattern or list of patterns.
    :param valuetype: One of 'glob' (``*`` and ``?`` wildcards), 'fixed', \
        'starts_with', 'ends_with', 'contains', or 'regex'.
    :param case_insensitive: Whether matching ignores case.
    :return: A regular expression string.
    """
    valuetypes = ["glob", "fixed", "starts_with", "ends_with", "contains", "regex"]
    validate_choice_parameter("valuetype", valuetype, valuetypes, "in pattern_to_regex")

    if isinstance(patterns, str):
        patterns = [patterns]

    if valuetype == "glob":
        alternatives = [f"^{_glob_to_regex(p)}$" for p in patterns]
    elif valuetype == "fixed":
        alternatives = [f"^{_escape(p)}$" for p in patterns]
    elif valuetype == "starts_with":
        alternatives = [f"^{_escape(p)}" for p in patterns]
    elif valuetype == "ends_with":
        alternatives = [f"{_escape(p)}$" for p in patterns]
    elif valuetype == "contains":
        alternatives = [_escape(p) for p in patterns]
    else:
        alternatives = list(patterns)

    regex = "|".join(f"(?:{alt})" for alt in alternatives)
    if case_insensitive:
        regex = "(?i)" + regex
    return regex
