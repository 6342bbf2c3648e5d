"""
Analyzer classes for tokens tables and document-term matrices.

This module provides specialized analyzer classes that encapsulate the
counting and comparison steps of the walkthrough. Each analyzer focuses
on one kind of analysis and validates its inputs before delegating the
work to polars expressions and SciPy statistics.

Classes:
    FrequencyAnalyzer: Frequency tables and top features
    DTMAnalyzer: Document-term matrix construction, trimming and reshaping
    DictionaryAnalyzer: Dictionary lookup with glob patterns
    NGramAnalyzer: N-gram construction and frequencies
    KWICAnalyzer: Keywords-in-context concordances
    KeynessAnalyzer: Keyness statistics for target/reference comparisons

Example:
    Basic frequency analysis::

        import polars as pl
        from quantext.analyzers import FrequencyAnalyzer, DTMAnalyzer

        tokens = pl.DataFrame({
            'doc_id': ['doc1'] * 3,
            'token_id': [1, 2, 3],
            'token': ['hello', 'world', 'hello'],
        }, schema={'doc_id': pl.String, 'token_id': pl.UInt32, 'token': pl.String})

        freq_table = FrequencyAnalyzer().frequency_table(tokens)
        dtm = DTMAnalyzer().tokens_dtm(tokens)

    Keyness of one group against all others::

        from quantext.analyzers import KeynessAnalyzer

        grouped = DTMAnalyzer().dtm_group(dtm, docvars, by='President')
        keyness = KeynessAnalyzer().dtm_keyness(grouped, target='Trump')

.. codeauthor:: quantext developers
"""

import re
import warnings
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import polars as pl
from scipy.stats.distributions import chi2

from .config import CONFIG
from .corpus_utils import pattern_to_regex
from .performance import PerformanceMonitor
from .validation import (
    DataFormatError,
    ParameterValidationError,
    PerformanceWarning,
    ValidationWarning,
    suggest_alternatives_for_empty_results,
    validate_choice_parameter,
    validate_dictionary,
    validate_dtm,
    validate_frequency_tables,
    validate_span_parameter,
    validate_tokens_dataframe,
)


class FrequencyAnalyzer:
    """
    Handles frequency analysis and distribution statistics.

    Example:
        Basic frequency analysis::

            analyzer = FrequencyAnalyzer()

            freq_table = analyzer.frequency_table(tokens)
            print(freq_table)
            # Output includes Token, AF (absolute freq), RF (relative freq), Range

        Most frequent features of a document-term matrix::

            analyzer.topfeatures(dtm, n=10)
    """

    def frequency_table(self, tokens_table: pl.DataFrame) -> pl.DataFrame:
        """
        Generate a frequency table for the tokens of a corpus.

        Args:
            tokens_table: A tokens table as generated by tokenize.

        Returns:
            A polars DataFrame with columns:
                - Token: The token text
                - AF: Absolute frequency (raw count)
                - RF: Relative frequency (per million tokens)
                - Range: Percentage of documents containing this token

        Note:
            - RF is calculated as: (token_count / total_tokens) * 1,000,000
            - Range is calculated as: (docs_with_token / total_docs) * 100
        """
        validate_tokens_dataframe(tokens_table, "in frequency_table")

        total_tokens = tokens_table.height
        total_docs = tokens_table.get_column("doc_id").n_unique()

        return (
            tokens_table.group_by("token")
            .agg(
                pl.len().cast(pl.UInt32).alias("AF"),
                pl.col("doc_id").n_unique().alias("Range"),
            )
            # calculate relative frequency
            .with_columns(
                pl.col("AF")
                .truediv(total_tokens)
                .mul(CONFIG.FREQUENCY_NORMALIZATION_FACTOR)
                .alias("RF")
            )
            # normalize over total documents in corpus
            .with_columns(pl.col("Range").truediv(total_docs).mul(100))
            .rename({"token": "Token"})
            .sort(["AF", "Token"], descending=[True, False])
            .select(["Token", "AF", "RF", "Range"])
        )

    def topfeatures(self, dtm: pl.DataFrame, n: int = 10) -> pl.DataFrame:
        """
        Return the most frequent features of a document-term matrix.

        :param dtm: A document-term matrix
        :param n: The number of features to return
        :return: A polars DataFrame with 'feature' and 'frequency' columns
        """
        validate_dtm(dtm, "in topfeatures")
        if dtm.width == 1:
            return pl.DataFrame(
                schema={"feature": pl.String, "frequency": pl.Float64}
            )

        return (
            dtm.drop("doc_id")
            .sum()
            .transpose(
                include_header=True, header_name="feature", column_names=["frequency"]
            )
            .sort(["frequency", "feature"], descending=[True, False])
            .head(n)
        )


class DTMAnalyzer:
    """Builds and reshapes document-term matrices."""

    def tokens_dtm(self, tokens_table: pl.DataFrame) -> pl.DataFrame:
        """
        Generate a document-term matrix of raw token counts.

        Rows keep the document order of the tokens table; feature columns
        are ordered by descending corpus frequency.

        :param tokens_table: A tokens table as generated by tokenize
        :return: A polars DataFrame with a 'doc_id' column
            followed by one UInt32 column per feature
        """
        validate_tokens_dataframe(tokens_table, "in tokens_dtm")

        if tokens_table.filter(pl.col("token") == "doc_id").height > 0:
            raise DataFormatError(
                "The token 'doc_id' clashes with the document id column "
                "in tokens_dtm. Remove it with tokens_remove() first."
            )

        doc_order = (
            tokens_table.select("doc_id")
            .unique(maintain_order=True)
            .with_row_index("__doc_order")
        )

        if tokens_table.height == 0:
            return doc_order.select("doc_id")

        n_cells = doc_order.height * tokens_table.get_column("token").n_unique()
        if n_cells > CONFIG.WIDE_DTM_CELLS:
            warnings.warn(
                f"The document-term matrix will hold {n_cells:,} cells. "
                "Consider removing stopwords or rare tokens before tokens_dtm().",
                PerformanceWarning,
            )

        dtm = (
            tokens_table.group_by(["doc_id", "token"])
            .len()
            .with_columns(pl.col("len").sum().over("token").alias("total"))
            .sort(["total", "token", "doc_id"], descending=[True, False, False])
            .pivot(index="doc_id", on="token", values="len", aggregate_function="sum")
            .with_columns(pl.selectors.numeric().fill_null(strategy="zero"))
        )

        return (
            doc_order.join(dtm, on="doc_id", how="left")
            .sort("__doc_order")
            .drop("__doc_order")
        )

    def dtm_trim(
        self,
        dtm: pl.DataFrame,
        min_termfreq: Optional[float] = None,
        max_termfreq: Optional[float] = None,
        min_docfreq: Optional[float] = None,
        max_docfreq: Optional[float] = None,
        docfreq_type: str = "count",
    ) -> pl.DataFrame:
        """
        Drop features by corpus frequency and document frequency.

        :param dtm: A document-term matrix
        :param min_termfreq: Minimum total count of a feature
        :param max_termfreq: Maximum total count of a feature
        :param min_docfreq: Minimum number (or proportion) of documents
        :param max_docfreq: Maximum number (or proportion) of documents
        :param docfreq_type: 'count' or 'prop' for the document thresholds
        :return: The document-term matrix with the remaining features
        """
        validate_dtm(dtm, "in dtm_trim")
        validate_choice_parameter(
            "docfreq_type", docfreq_type, ["count", "prop"], "in dtm_trim"
        )
        if dtm.width == 1:
            return dtm

        features = dtm.drop("doc_id")
        termfreq = features.sum().row(0, named=True)
        docfreq = features.select(pl.all().gt(0).sum()).row(0, named=True)
        if docfreq_type == "prop":
            docfreq = {col: df / dtm.height for col, df in docfreq.items()}

        def within(value, lower, upper):
            if lower is not None and value < lower:
                return False
            if upper is not None and value > upper:
                return False
            return True

        keep = [
            col
            for col in features.columns
            if within(termfreq[col], min_termfreq, max_termfreq)
            and within(docfreq[col], min_docfreq, max_docfreq)
        ]

        if len(keep) == 0:
            suggest_alternatives_for_empty_results("dtm_trim")

        return dtm.select(["doc_id"] + keep)

    def dtm_select(
        self,
        dtm: pl.DataFrame,
        patterns: Union[str, Sequence[str]],
        selection: str = "keep",
        valuetype: str = "glob",
        case_insensitive: bool = True,
    ) -> pl.DataFrame:
        """
        Keep or remove features whose names match any of the patterns.

        :param dtm: A document-term matrix
        :param patterns: A pattern or list of patterns (e.g. a stopword list)
        :param selection: 'keep' or 'remove'
        :param valuetype: How patterns are interpreted, see pattern_to_regex
        :param case_insensitive: Whether matching ignores case
        :return: The document-term matrix with the selected features
        """
        validate_dtm(dtm, "in dtm_select")
        validate_choice_parameter(
            "selection", selection, ["keep", "remove"], "in dtm_select"
        )
        if not isinstance(patterns, str):
            patterns = list(patterns)
        regex = re.compile(pattern_to_regex(patterns, valuetype, case_insensitive))

        features = dtm.columns[1:]
        if selection == "keep":
            selected = [col for col in features if regex.search(col)]
        else:
            selected = [col for col in features if not regex.search(col)]
        return dtm.select(["doc_id"] + selected)

    def dtm_subset(
        self, dtm: pl.DataFrame, docvars: pl.DataFrame, predicate: pl.Expr
    ) -> pl.DataFrame:
        """
        Keep the documents whose document variables satisfy a predicate.

        :param dtm: A document-term matrix
        :param docvars: A DataFrame with 'doc_id' and document variables
        :param predicate: A polars expression evaluated on docvars,
            e.g. ``pl.col('President').is_in(['Obama', 'Trump'])``
        :return: The document-term matrix restricted to matching documents
        """
        validate_dtm(dtm, "in dtm_subset")
        self._validate_docvars(docvars, "in dtm_subset")

        keep_ids = docvars.filter(predicate).get_column("doc_id").to_list()
        return dtm.filter(pl.col("doc_id").is_in(keep_ids))

    def dtm_group(
        self, dtm: pl.DataFrame, docvars: pl.DataFrame, by: str
    ) -> pl.DataFrame:
        """
        Sum the rows of a document-term matrix by a document variable.

        :param dtm: A document-term matrix
        :param docvars: A DataFrame with 'doc_id' and document variables
        :param by: The document variable to group by
        :return: A document-term matrix with one row per group; the group
            values become the new 'doc_id'
        """
        validate_dtm(dtm, "in dtm_group")
        self._validate_docvars(docvars, "in dtm_group")
        if by == "doc_id" or by not in docvars.columns:
            raise ParameterValidationError(
                f"Cannot group by '{by}' in dtm_group. "
                f"Available document variables: "
                f"{', '.join(c for c in docvars.columns if c != 'doc_id')}"
            )

        # the group column may share its name with a feature
        grouped = (
            dtm.join(
                docvars.select("doc_id", pl.col(by).alias("__group")),
                on="doc_id",
                how="left",
            )
            .drop("doc_id")
        )

        unassigned = grouped.filter(pl.col("__group").is_null()).height
        if unassigned > 0:
            warnings.warn(
                f"{unassigned} documents have no value for '{by}' in dtm_group "
                "and were left out.",
                ValidationWarning,
            )

        return (
            grouped.filter(pl.col("__group").is_not_null())
            .group_by("__group", maintain_order=True)
            .sum()
            .with_columns(pl.col("__group").cast(pl.String))
            .rename({"__group": "doc_id"})
            .select(["doc_id"] + dtm.columns[1:])
        )

    def dtm_match(self, dtm: pl.DataFrame, features: Sequence[str]) -> pl.DataFrame:
        """
        Conform a document-term matrix to a given feature set.

        Features absent from ``dtm`` are added as zero columns and features
        not in ``features`` are dropped, so a test matrix lines up with
        the matrix a model was trained on.

        :param dtm: A document-term matrix
        :param features: The feature names, in the desired order
        :return: A document-term matrix with exactly these features
        """
        validate_dtm(dtm, "in dtm_match")
        fill_dtype = dtm.schema[dtm.columns[1]] if dtm.width > 1 else pl.UInt32
        missing = [f for f in features if f not in dtm.columns]
        return dtm.with_columns(
            [pl.lit(0, dtype=fill_dtype).alias(f) for f in missing]
        ).select(["doc_id"] + list(features))

    @staticmethod
    def _validate_docvars(docvars: pl.DataFrame, context: str) -> None:
        if docvars is None or "doc_id" not in docvars.columns:
            raise DataFormatError(
                f"Document variables must be a DataFrame with a 'doc_id' column "
                f"{context}. Use corpus_docvars(corpus) to obtain them."
            )


class DictionaryAnalyzer:
    """Handles dictionary lookup on document-term matrices."""

    def dictionary_lookup(
        self,
        dtm: pl.DataFrame,
        dictionary: Dict[str, Union[str, List[str]]],
        valuetype: str = "glob",
        case_insensitive: bool = True,
        nomatch: Optional[str] = None,
    ) -> pl.DataFrame:
        """
        Count dictionary categories in each document.

        Each feature is counted at most once per key, even when several
        of the key's patterns match it.

        :param dtm: A document-term matrix
        :param dictionary: A mapping such as
            ``{'terrorism': ['terror*'], 'economy': ['job*', 'econom*']}``
        :param valuetype: How patterns are interpreted, see pattern_to_regex
        :param case_insensitive: Whether matching ignores case
        :param nomatch: If given, the name of an extra column counting
            features that no key matched
        :return: A document-term matrix with one column per key
        """
        validate_dtm(dtm, "in dictionary_lookup")
        validate_dictionary(dictionary, "in dictionary_lookup")

        features = dtm.columns[1:]
        matched = set()
        exprs = []
        for key, patterns in dictionary.items():
            regex = re.compile(pattern_to_regex(patterns, valuetype, case_insensitive))
            cols = [col for col in features if regex.search(col)]
            matched.update(cols)
            exprs.append(self._sum_columns(cols, key))

        if nomatch is not None:
            unmatched = [col for col in features if col not in matched]
            exprs.append(self._sum_columns(unmatched, nomatch))

        return dtm.select([pl.col("doc_id")] + exprs)

    @staticmethod
    def _sum_columns(cols: List[str], name: str) -> pl.Expr:
        if len(cols) == 0:
            return pl.lit(0, dtype=pl.UInt32).alias(name)
        return pl.sum_horizontal(cols).alias(name)


class NGramAnalyzer:
    """Handles n-gram construction and frequencies."""

    def tokens_ngrams(
        self, tokens_table: pl.DataFrame, n: int = 2, concatenator: str = "_"
    ) -> pl.DataFrame:
        """
        Replace tokens by the n-grams that start at each position.

        N-grams never span two documents.

        :param tokens_table: A tokens table as generated by tokenize
        :param n: The n-gram length
        :param concatenator: The string placed between joined tokens
        :return: A tokens table whose tokens are n-grams
        """
        validate_tokens_dataframe(tokens_table, "in tokens_ngrams")
        validate_span_parameter(n, "in tokens_ngrams")

        look_ahead = [pl.col("token").shift(-i).over("doc_id") for i in range(n)]

        return (
            tokens_table.with_columns(
                pl.concat_str(look_ahead, separator=concatenator).alias("ngram")
            )
            .filter(pl.col("ngram").is_not_null())
            .select(
                pl.col("doc_id"),
                pl.col("token_id"),
                pl.col("ngram").alias("token"),
            )
        )

    def ngrams(
        self,
        tokens_table: pl.DataFrame,
        span: int = 2,
        min_frequency: int = 2,
        concatenator: str = " ",
    ) -> pl.DataFrame:
        """
        Generate a frequency table of n-grams of a specified length.

        :param tokens_table: A tokens table as generated by tokenize
        :param span: The n-gram length
        :param min_frequency: The minimum absolute frequency returned
        :param concatenator: The string placed between joined tokens
        :return: A frequency table whose Token column holds n-grams
        """
        ngram_tokens = self.tokens_ngrams(tokens_table, span, concatenator)
        ngram_df = (
            FrequencyAnalyzer()
            .frequency_table(ngram_tokens)
            .filter(pl.col("AF") >= min_frequency)
        )
        if ngram_df.height == 0:
            suggest_alternatives_for_empty_results(
                "ngrams", span=span, min_frequency=min_frequency
            )
        return ngram_df


class KWICAnalyzer:
    """Handles Keywords in Context (KWIC) analysis."""

    def kwic(
        self,
        tokens_table: pl.DataFrame,
        pattern: Union[str, List[str]],
        window: int = CONFIG.KWIC_WINDOW,
        search_type: str = "glob",
        case_insensitive: bool = True,
    ) -> pl.DataFrame:
        """
        Generate a concordance of a pattern with its surrounding context.

        Context is taken from the same document only.

        :param tokens_table: A tokens table as generated by tokenize
        :param pattern: The token pattern, e.g. 'terror*'
        :param window: Number of context tokens on each side
        :param search_type: One of 'glob', 'fixed', 'starts_with',
            'ends_with', 'contains', 'regex'
        :param case_insensitive: Whether matching ignores case
        :return: A polars DataFrame with doc_id, from, to, pre,
            keyword and post columns
        """
        validate_tokens_dataframe(tokens_table, "in kwic")
        if not isinstance(window, int) or window < 1:
            raise ParameterValidationError(
                f"Window must be a positive integer in kwic, got {window!r}."
            )
        regex = pattern_to_regex(pattern, search_type, case_insensitive)

        preceding = [
            pl.col("token").shift(i).over("doc_id") for i in range(window, 0, -1)
        ]
        following = [
            pl.col("token").shift(-i).over("doc_id") for i in range(1, window + 1)
        ]

        kwic_df = (
            tokens_table.with_columns(
                pl.concat_list(preceding).list.drop_nulls().list.join(" ").alias("pre"),
                pl.concat_list(following).list.drop_nulls().list.join(" ").alias("post"),
            )
            .filter(pl.col("token").str.contains(regex))
            .select(
                pl.col("doc_id"),
                pl.col("token_id").alias("from"),
                pl.col("token_id").alias("to"),
                pl.col("pre"),
                pl.col("token").alias("keyword"),
                pl.col("post"),
            )
        )

        if kwic_df.height == 0:
            suggest_alternatives_for_empty_results("kwic", pattern=str(pattern))

        return kwic_df


class KeynessAnalyzer:
    """Handles keyness analysis and statistical comparisons."""

    def keyness_table(
        self,
        target_frequencies: pl.DataFrame,
        reference_frequencies: pl.DataFrame,
        correct: bool = False,
        swap_target: bool = False,
        threshold: float = 0.01,
    ) -> pl.DataFrame:
        """
        Generate a keyness table comparing token frequencies from target and reference corpora.

        :param target_frequencies: A frequency table from a target corpus
        :param reference_frequencies: A frequency table from a reference corpus
        :param correct: If True, apply the Yates correction to the log-likelihood calculation
        :param swap_target: If True, swap which corpus is treated as target
        :param threshold: P-value threshold for significance
        :return: A polars DataFrame with log-likelihood (LL), Log Ratio (LR),
            p-values (PV) and the frequencies of both corpora
        """  # noqa: E501
        validate_frequency_tables(
            target_frequencies, reference_frequencies, "in keyness_table"
        )

        total_target = target_frequencies.get_column("AF").sum()
        total_reference = reference_frequencies.get_column("AF").sum()
        total_tokens = total_target + total_reference

        kw_df = target_frequencies.select(["Token", "AF", "RF", "Range"]).join(
            reference_frequencies.select(["Token", "AF", "RF", "Range"]),
            on="Token",
            how="full",
            coalesce=True,
            suffix="_Ref",
        ).with_columns(pl.selectors.numeric().fill_null(strategy="zero"))

        expected_tar = (
            pl.col("AF").add(pl.col("AF_Ref")).mul(total_target / total_tokens)
        )
        deviation = pl.col("AF").sub(expected_tar)

        if not correct:
            correction_tar = pl.col("AF")
            correction_ref = pl.col("AF_Ref")
        else:
            # move both observations half a unit towards their expectation
            correction_tar = pl.col("AF").sub(0.5 * deviation.sign())
            correction_ref = pl.col("AF_Ref").add(0.5 * deviation.sign())

        kw_df = (
            kw_df.with_columns(
                pl.when(deviation.abs() > 0.25)
                .then(correction_tar)
                .otherwise(pl.col("AF"))
                .cast(pl.Float64)
                .alias("AF_Yates"),
                pl.when(deviation.abs() > 0.25)
                .then(correction_ref)
                .otherwise(pl.col("AF_Ref"))
                .cast(pl.Float64)
                .alias("AF_Ref_Yates"),
            )
            .with_columns(
                pl.when(pl.col("AF_Yates") > 0)
                .then(
                    pl.col("AF_Yates").mul(
                        pl.col("AF_Yates")
                        .truediv(
                            pl.col("AF_Yates")
                            .add(pl.col("AF_Ref_Yates"))
                            .mul(total_target / total_tokens)
                        )
                        .log()
                    )
                )
                .otherwise(0)
                .alias("L1")
            )
            .with_columns(
                pl.when(pl.col("AF_Ref_Yates") > 0)
                .then(
                    pl.col("AF_Ref_Yates").mul(
                        pl.col("AF_Ref_Yates")
                        .truediv(
                            pl.col("AF_Yates")
                            .add(pl.col("AF_Ref_Yates"))
                            .mul(total_reference / total_tokens)
                        )
                        .log()
                    )
                )
                .otherwise(0)
                .alias("L2")
            )
            .with_columns(
                pl.when(pl.col("RF") > pl.col("RF_Ref"))
                .then(pl.col("L1").add(pl.col("L2")).mul(2).abs())
                .otherwise(pl.col("L1").add(pl.col("L2")).mul(2).abs().neg())
                .alias("LL")
            )
            .with_columns(
                pl.when(pl.col("AF_Ref") == 0)
                .then(
                    pl.col("AF")
                    .truediv(total_target)
                    .truediv(0.5 / total_reference)
                    .log(base=2)
                )
                .when(pl.col("AF") == 0)
                .then(
                    pl.col("AF_Ref")
                    .truediv(total_reference)
                    .truediv(0.5 / total_target)
                    .log(base=2)
                    .neg()
                )
                .otherwise(
                    pl.col("AF")
                    .truediv(total_target)
                    .truediv(pl.col("AF_Ref").truediv(total_reference))
                    .log(base=2)
                )
                .alias("LR")
            )
            .with_columns(
                pl.col("LL")
                .abs()
                .map_elements(lambda x: chi2.sf(x, 1), return_dtype=pl.Float64)
                .alias("PV")
            )
            .sort("LL", descending=True)
            .filter(pl.col("PV") < threshold)
        )

        if not swap_target:
            kw_df = kw_df.filter(pl.col("LL") > 0)
        else:
            kw_df = (
                kw_df.with_columns(pl.col(["LL", "LR"]).mul(-1))
                .sort("LL", descending=True)
                .filter(pl.col("LL") > 0)
            )

        if kw_df.height == 0:
            suggest_alternatives_for_empty_results("keyness", threshold=threshold)

        return kw_df.select(
            [
                "Token",
                "LL",
                "LR",
                "PV",
                "RF",
                "RF_Ref",
                "AF",
                "AF_Ref",
                "Range",
                "Range_Ref",
            ]
        )

    def dtm_keyness(
        self,
        dtm: pl.DataFrame,
        target: Union[str, Sequence[str], Sequence[bool], pl.Series],
        measure: str = "chi2",
        correct: bool = True,
    ) -> pl.DataFrame:
        """
        Score every feature for how distinctive it is of the target documents.

        The target documents are compared with all remaining documents in
        a 2x2 table of the feature's count against all other counts.
        Positive scores mark features that are over-represented in the
        target, negative scores features over-represented in the reference.

        Args:
            dtm: A document-term matrix of counts, typically grouped with
                dtm_group so that each row is one group.
            target: A doc_id, a list of doc_ids, or a boolean mask over
                the rows of ``dtm``.
            measure: 'chi2' (Pearson chi-squared) or 'lr'
                (likelihood-ratio G2).
            correct: Apply the Yates continuity correction to 'chi2'.

        Returns:
            A polars DataFrame with 'feature', the statistic ('chi2' or
            'G2'), 'p', 'n_target' and 'n_reference', sorted by the
            statistic in descending order.

        Example:
            >>> grouped = DTMAnalyzer().dtm_group(dtm, docvars, by='President')
            >>> KeynessAnalyzer().dtm_keyness(grouped, target='Trump').head(5)
        """
        validate_dtm(dtm, "in dtm_keyness")
        validate_choice_parameter("measure", measure, ["chi2", "lr"], "in dtm_keyness")

        mask = self._target_mask(dtm, target)

        with PerformanceMonitor("Keyness"):
            features = dtm.drop("doc_id")
            n_target = features.filter(mask).sum().row(0)
            n_reference = features.filter(~mask).sum().row(0)

            table = pl.DataFrame(
                {
                    "feature": features.columns,
                    "n_target": n_target,
                    "n_reference": n_reference,
                },
                schema={
                    "feature": pl.String,
                    "n_target": pl.Float64,
                    "n_reference": pl.Float64,
                },
            ).filter((pl.col("n_target") + pl.col("n_reference")) > 0)

            total_target = table.get_column("n_target").sum()
            total_reference = table.get_column("n_reference").sum()
            total = total_target + total_reference

            a = pl.col("n_target")
            b = pl.col("n_reference")
            c = pl.lit(total_target) - a
            d = pl.lit(total_reference) - b
            expected_a = (a + b) * total_target / total
            direction = pl.when(a >= expected_a).then(1.0).otherwise(-1.0)

            if measure == "chi2":
                stat_name = "chi2"
                diff = (a * d - b * c).abs()
                if correct:
                    diff = pl.max_horizontal(diff - total / 2, pl.lit(0.0))
                statistic = (
                    pl.lit(total) * diff.pow(2)
                    / ((a + b) * (c + d) * total_target * total_reference)
                )
            else:
                stat_name = "G2"
                cells = [
                    (a, (a + b) * total_target / total),
                    (b, (a + b) * total_reference / total),
                    (c, (c + d) * total_target / total),
                    (d, (c + d) * total_reference / total),
                ]
                statistic = 2 * pl.sum_horizontal(
                    [
                        pl.when(observed > 0)
                        .then(observed * (observed / expected).log())
                        .otherwise(0.0)
                        for observed, expected in cells
                    ]
                )

            result = table.with_columns(
                statistic.mul(direction).fill_nan(0.0).alias(stat_name)
            )
            p_values = chi2.sf(np.abs(result.get_column(stat_name).to_numpy()), 1)

            return (
                result.with_columns(pl.Series("p", p_values, dtype=pl.Float64))
                .sort([stat_name, "feature"], descending=[True, False])
                .select(["feature", stat_name, "p", "n_target", "n_reference"])
            )

    @staticmethod
    def _target_mask(dtm: pl.DataFrame, target) -> pl.Series:
        """Translate a target argument into a boolean row mask."""
        if isinstance(target, str):
            target = [target]

        if isinstance(target, pl.Series) and target.dtype == pl.Boolean:
            mask = target
        elif len(target) > 0 and all(isinstance(t, (bool, np.bool_)) for t in target):
            mask = pl.Series("target", list(target), dtype=pl.Boolean)
        else:
            unknown = [t for t in target if t not in dtm.get_column("doc_id").to_list()]
            if unknown:
                raise ParameterValidationError(
                    f"Unknown target documents in dtm_keyness: "
                    f"{', '.join(map(str, unknown[:5]))}"
                )
            mask = dtm.get_column("doc_id").is_in(list(target))

        if mask.len() != dtm.height:
            raise ParameterValidationError(
                f"Target mask has {mask.len()} values but the dtm has "
                f"{dtm.height} documents in dtm_keyness."
            )
        if not mask.any() or mask.all():
            raise ParameterValidationError(
                "dtm_keyness needs at least one target and one reference document."
            )
        return mask
