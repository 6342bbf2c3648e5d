"""
Functions for the quantitative analysis of text corpora.

This module provides the main API functions of the package, serving as
convenient wrappers around the processor, analyzer and model classes.
Each function performs one step of a typical workflow and returns a
polars DataFrame (or a fitted model) that feeds the next step.

Main Functions:
    clean_text: Strip HTML, normalize whitespace and case
    tokenize: Split texts into a tokens table with spaCy
    process_corpus: Clean, tokenize, remove stopwords and stem in one call
    tokens_dtm: Build a document-term matrix
    dtm_trim / dtm_select / dtm_subset / dtm_group: Filter and reshape a dtm
    frequency_table / topfeatures: Count tokens and features
    dictionary_lookup: Count dictionary categories
    ngrams / kwic: N-grams and concordances
    keyness_table / dtm_keyness: Keyness statistics
    dependency_parse: spaCy dependency parsing
    textmodel_nb / topic_model: Fit Naive Bayes and LDA models

Example:
    Basic corpus analysis workflow::

        import polars as pl
        import quantext as qt

        corpus = qt.readtext_table("speeches.csv", text_field="text")

        tokens = qt.process_corpus(
            corpus, stopwords=qt.get_stopwords("en"), stem=True
        )
        dtm = qt.tokens_dtm(tokens)
        dtm = qt.dtm_trim(dtm, min_termfreq=5)

        qt.topfeatures(dtm, n=20)
        qt.dictionary_lookup(dtm, {"economy": ["job*", "econom*"]})

.. codeauthor:: quantext developers
"""

from typing import Dict, Iterable, List, Optional, Sequence, Union

import polars as pl
import spacy
from spacy.language import Language

from .analyzers import (
    DictionaryAnalyzer,
    DTMAnalyzer,
    FrequencyAnalyzer,
    KeynessAnalyzer,
    KWICAnalyzer,
    NGramAnalyzer,
)
from .config import CONFIG
from .models import NaiveBayesClassifier, TopicModel
from .processors import (
    CorpusProcessor,
    DependencyParser,
    SpacyTokenizer,
    TextPreprocessor,
    TokensTransformer,
)

# Initialize analyzer instances for use in wrapper functions
_preprocessor = TextPreprocessor()
_tokenizer = SpacyTokenizer()
_transformer = TokensTransformer()
_parser = DependencyParser()
_freq_analyzer = FrequencyAnalyzer()
_dtm_analyzer = DTMAnalyzer()
_dict_analyzer = DictionaryAnalyzer()
_ngram_analyzer = NGramAnalyzer()
_kwic_analyzer = KWICAnalyzer()
_keyness_analyzer = KeynessAnalyzer()


def clean_text(
    corp: pl.DataFrame,
    strip_html: bool = True,
    lowercase: bool = False,
    squish: bool = True,
    fix_quotes: bool = True,
    ascii: bool = False,
) -> pl.DataFrame:
    """
    Clean the texts of a corpus.

    :param corp: A polars DataFrame with 'doc_id' and 'text' columns
    :param strip_html: Remove anything matching the pattern '<.*?>'
    :param lowercase: Convert text to lowercase
    :param squish: Collapse runs of whitespace
    :param fix_quotes: Replace curly quotes with straight ones
    :param ascii: Reduce text to ASCII characters
    :return: The corpus with cleaned texts
    """
    return _preprocessor.preprocess_corpus(
        corp, strip_html, lowercase, squish, fix_quotes, ascii
    )


def tokenize(
    corp: pl.DataFrame,
    nlp_model: Optional[Language] = None,
    remove_punct: bool = True,
    remove_numbers: bool = False,
    remove_symbols: bool = False,
    batch_size: int = CONFIG.DEFAULT_BATCH_SIZE,
) -> pl.DataFrame:
    """
    Split the texts of a corpus into tokens.

    :param corp: A polars DataFrame with 'doc_id' and 'text' columns
    :param nlp_model: A spaCy Language instance. \
        Defaults to a blank English pipeline.
    :param remove_punct: Drop punctuation tokens
    :param remove_numbers: Drop number-like tokens
    :param remove_symbols: Drop symbol tokens
    :param batch_size: Batch size passed to the spaCy tokenizer
    :return: A tokens table with 'doc_id', 'token_id' and 'token' columns
    """
    if nlp_model is None:
        nlp_model = spacy.blank(CONFIG.DEFAULT_LANGUAGE)
    return _tokenizer.tokenize(
        corp, nlp_model, remove_punct, remove_numbers, remove_symbols, batch_size
    )


def process_corpus(
    corp: pl.DataFrame,
    nlp_model: Optional[Language] = None,
    strip_html: bool = True,
    lowercase: bool = True,
    remove_punct: bool = True,
    remove_numbers: bool = False,
    remove_symbols: bool = False,
    stopwords: Optional[Iterable[str]] = None,
    stem: bool = False,
    stem_language: str = CONFIG.DEFAULT_STEM_LANGUAGE,
    min_nchar: int = 1,
    batch_size: int = CONFIG.DEFAULT_BATCH_SIZE,
) -> pl.DataFrame:
    """
    Turn a corpus into an analysis-ready tokens table.

    This is the main entry point for processing raw text. It cleans the
    texts, tokenizes them and applies the requested token transformations.

    Args:
        corp: A polars DataFrame containing 'doc_id' and 'text' columns.
        nlp_model: A spaCy Language instance; only its tokenizer is used.
            Defaults to ``spacy.blank('en')``.
        strip_html: Remove HTML tags before tokenizing.
        lowercase: Case-fold the tokens.
        remove_punct: Drop punctuation tokens.
        remove_numbers: Drop number-like tokens.
        remove_symbols: Drop symbol tokens.
        stopwords: A collection of words to remove, e.g. from get_stopwords.
        stem: Reduce tokens to their Snowball stems.
        stem_language: The Snowball language, e.g. 'english'.
        min_nchar: Minimum number of characters a token must have.
        batch_size: Number of documents to tokenize in each batch.

    Returns:
        A polars DataFrame with the following columns:
            - doc_id: Document identifier
            - token_id: Position of the token in the original document
            - token: The (transformed) token

    Example:
        Stopword removal and stemming::

            import quantext as qt

            tokens = qt.process_corpus(
                corpus, stopwords=qt.get_stopwords("en"), stem=True
            )

    Note:
        - Stopwords are removed before stemming
        - Documents without any remaining tokens do not appear in the output
    """
    processor = CorpusProcessor()
    return processor.process_corpus(
        corp,
        nlp_model,
        strip_html=strip_html,
        lowercase=lowercase,
        remove_punct=remove_punct,
        remove_numbers=remove_numbers,
        remove_symbols=remove_symbols,
        stopwords=stopwords,
        stem=stem,
        stem_language=stem_language,
        min_nchar=min_nchar,
        batch_size=batch_size,
    )


def tokens_tolower(tokens_table: pl.DataFrame) -> pl.DataFrame:
    """Convert all tokens to lowercase."""
    return _transformer.tokens_tolower(tokens_table)


def tokens_wordstem(
    tokens_table: pl.DataFrame, language: str = CONFIG.DEFAULT_STEM_LANGUAGE
) -> pl.DataFrame:
    """
    Stem the tokens of a tokens table.

    :param tokens_table: A tokens table as generated by tokenize
    :param language: A Snowball language name, e.g. 'english'
    :return: A tokens table of stems
    """
    return _transformer.tokens_wordstem(tokens_table, language)


def tokens_remove(
    tokens_table: pl.DataFrame,
    patterns: Union[str, Iterable[str]],
    valuetype: str = "fixed",
    case_insensitive: bool = True,
) -> pl.DataFrame:
    """
    Remove tokens matching any of the patterns.

    :param tokens_table: A tokens table as generated by tokenize
    :param patterns: A pattern or a collection such as a stopword list
    :param valuetype: One of 'fixed', 'glob' or 'regex'
    :param case_insensitive: Whether matching ignores case
    :return: A tokens table without the matching tokens
    """
    return _transformer.tokens_remove(
        tokens_table, patterns, valuetype, case_insensitive
    )


def tokens_select(
    tokens_table: pl.DataFrame,
    patterns: Union[str, Iterable[str]],
    valuetype: str = "glob",
    case_insensitive: bool = True,
) -> pl.DataFrame:
    """Keep only tokens matching any of the patterns."""
    return _transformer.tokens_select(
        tokens_table, patterns, valuetype, case_insensitive
    )


def tokens_keep_min_nchar(tokens_table: pl.DataFrame, min_nchar: int = 2):
    return _transformer.tokens_keep_min_nchar(tokens_table, min_nchar)


def tokens_dtm(tokens_table: pl.DataFrame) -> pl.DataFrame:
    """
    Generate a document-term matrix of raw token counts.

    :param tokens_table: A tokens table as generated by tokenize
    :return: a polars DataFrame of absolute token frequencies for each document
    """
    return _dtm_analyzer.tokens_dtm(tokens_table)


def dtm_trim(
    dtm: pl.DataFrame,
    min_termfreq: Optional[float] = None,
    max_termfreq: Optional[float] = None,
    min_docfreq: Optional[float] = None,
    max_docfreq: Optional[float] = None,
    docfreq_type: str = "count",
) -> pl.DataFrame:
    """
    Drop rare or overly common features from a document-term matrix.

    :param dtm: A document-term matrix
    :param min_termfreq: Minimum total count of a feature
    :param max_termfreq: Maximum total count of a feature
    :param min_docfreq: Minimum document frequency
    :param max_docfreq: Maximum document frequency
    :param docfreq_type: 'count' (number of documents) \
        or 'prop' (share of documents)
    :return: The trimmed document-term matrix
    """
    return _dtm_analyzer.dtm_trim(
        dtm, min_termfreq, max_termfreq, min_docfreq, max_docfreq, docfreq_type
    )


def dtm_select(
    dtm: pl.DataFrame,
    patterns: Union[str, Sequence[str]],
    selection: str = "keep",
    valuetype: str = "glob",
    case_insensitive: bool = True,
) -> pl.DataFrame:
    """
    Keep or remove the features of a document-term matrix matching patterns.

    :param dtm: A document-term matrix
    :param patterns: A pattern or list of patterns
    :param selection: 'keep' or 'remove'
    :param valuetype: One of 'glob', 'fixed', 'starts_with', \
        'ends_with', 'contains', 'regex'
    :param case_insensitive: Whether matching ignores case
    :return: The document-term matrix with the selected features
    """
    return _dtm_analyzer.dtm_select(
        dtm, patterns, selection, valuetype, case_insensitive
    )


def dtm_subset(
    dtm: pl.DataFrame, docvars: pl.DataFrame, predicate: pl.Expr
) -> pl.DataFrame:
    """
    Keep the documents whose document variables satisfy a predicate.

    :param dtm: A document-term matrix
    :param docvars: Document variables, e.g. from corpus_docvars
    :param predicate: A polars expression over the document variables
    :return: The document-term matrix with matching documents only
    """
    return _dtm_analyzer.dtm_subset(dtm, docvars, predicate)


def dtm_group(dtm: pl.DataFrame, docvars: pl.DataFrame, by: str) -> pl.DataFrame:
    """
    Sum the documents of a document-term matrix by a document variable.

    :param dtm: A document-term matrix
    :param docvars: Document variables, e.g. from corpus_docvars
    :param by: The document variable to group by
    :return: A document-term matrix with one row per group
    """
    return _dtm_analyzer.dtm_group(dtm, docvars, by)


def dtm_match(dtm: pl.DataFrame, features: Sequence[str]) -> pl.DataFrame:
    """Conform a document-term matrix to the given features."""
    return _dtm_analyzer.dtm_match(dtm, features)


def frequency_table(tokens_table: pl.DataFrame) -> pl.DataFrame:
    """
    Generate a count of token frequencies.

    :param tokens_table: A tokens table as generated by tokenize
    :return: a polars DataFrame of absolute frequencies, \
        normalized frequencies (per million tokens) and ranges
    """
    return _freq_analyzer.frequency_table(tokens_table)


def topfeatures(dtm: pl.DataFrame, n: int = 10) -> pl.DataFrame:
    """
    The most frequent features of a document-term matrix.

    :param dtm: A document-term matrix
    :param n: The number of features to return
    :return: a polars DataFrame with 'feature' and 'frequency' columns
    """
    return _freq_analyzer.topfeatures(dtm, n)


def dictionary_lookup(
    dtm: pl.DataFrame,
    dictionary: Dict[str, Union[str, List[str]]],
    valuetype: str = "glob",
    case_insensitive: bool = True,
    nomatch: Optional[str] = None,
) -> pl.DataFrame:
    """
    Count the categories of a dictionary in each document.

    :param dtm: A document-term matrix
    :param dictionary: A mapping of keys to glob patterns, \
        e.g. {'terrorism': ['terror*']}
    :param valuetype: How patterns are interpreted
    :param case_insensitive: Whether matching ignores case
    :param nomatch: Name of an optional column for unmatched features
    :return: a document-term matrix with one column per dictionary key
    """
    return _dict_analyzer.dictionary_lookup(
        dtm, dictionary, valuetype, case_insensitive, nomatch
    )


def tokens_ngrams(
    tokens_table: pl.DataFrame, n: int = 2, concatenator: str = "_"
) -> pl.DataFrame:
    """
    Form n-grams from the tokens of each document.

    :param tokens_table: A tokens table as generated by tokenize
    :param n: An integer between 2 and 10 representing the n-gram length
    :param concatenator: The string joining the tokens of an n-gram
    :return: a tokens table of n-grams
    """
    return _ngram_analyzer.tokens_ngrams(tokens_table, n, concatenator)


def ngrams(
    tokens_table: pl.DataFrame, span: int = 2, min_frequency: int = 2
) -> pl.DataFrame:
    """
    Generate a table of ngram frequencies of a specified length.

    :param tokens_table: A tokens table as generated by tokenize
    :param span: An integer between 2 and 10 \
        representing the size of the ngrams
    :param min_frequency: The minimum count of the ngrams returned
    :return: a polars DataFrame containing the ngrams, \
        absolute frequencies, normalized frequencies \
            (per million tokens) and ranges
    """
    return _ngram_analyzer.ngrams(tokens_table, span, min_frequency)


def kwic(
    tokens_table: pl.DataFrame,
    pattern: Union[str, List[str]],
    window: int = CONFIG.KWIC_WINDOW,
    search_type: str = "glob",
    case_insensitive: bool = True,
) -> pl.DataFrame:
    """
    Generate a KWIC (keywords in context) table.

    :param tokens_table: A tokens table as generated by tokenize
    :param pattern: The token pattern to search for, e.g. 'terror*'
    :param window: The number of context tokens on either side
    :param search_type: One of 'glob', 'fixed', 'starts_with', \
        'ends_with', 'contains', 'regex'
    :param case_insensitive: Whether matching ignores case
    :return: a polars DataFrame containing \
        the keyword with its preceding and following context
    """
    return _kwic_analyzer.kwic(
        tokens_table, pattern, window, search_type, case_insensitive
    )


def keyness_table(
    target_frequencies: pl.DataFrame,
    reference_frequencies: pl.DataFrame,
    correct=False,
    swap_target=False,
    threshold=0.01,
):
    """
    Generate a keyness table comparing token frequencies \
        from a target and a reference corpus

    :param target_frequencies: A frequency table from a target corpus
    :param reference_frequencies: A frequency table from a reference corpus
    :param correct: If True, apply the Yates correction \
        to the log-likelihood calculation
    :param swap_target: If True, report keywords of the reference corpus
    :param threshold: The p-value cutoff
    :return: a polars DataFrame of absolute frequencies, \
        normalized frequencies (per million tokens) \
            and ranges for both corpora, \
                as well as keyness values as calculated by \
                    log-likelihood and effect size as calculated by Log Ratio.
    """
    return _keyness_analyzer.keyness_table(
        target_frequencies,
        reference_frequencies,
        correct,
        swap_target,
        threshold,
    )


def dtm_keyness(
    dtm: pl.DataFrame,
    target: Union[str, Sequence[str], Sequence[bool], pl.Series],
    measure: str = "chi2",
    correct: bool = True,
) -> pl.DataFrame:
    """
    Keyness of every feature for target documents against all others.

    :param dtm: A document-term matrix of counts
    :param target: A doc_id, a list of doc_ids or a boolean row mask
    :param measure: 'chi2' or 'lr' (likelihood ratio)
    :param correct: Apply the Yates correction to chi2
    :return: a polars DataFrame with 'feature', the statistic, 'p', \
        'n_target' and 'n_reference'
    """
    return _keyness_analyzer.dtm_keyness(dtm, target, measure, correct)


def dependency_parse(
    texts: Union[str, List[str], pl.DataFrame],
    nlp_model: Language,
    batch_size: int = CONFIG.DEFAULT_BATCH_SIZE,
) -> pl.DataFrame:
    """
    Parse texts with a spaCy pipeline that includes a dependency parser.

    :param texts: A sentence, a list of texts or a corpus DataFrame
    :param nlp_model: A loaded spaCy model such as 'en_core_web_sm'
    :param batch_size: Batch size passed to ``nlp.pipe``
    :return: a polars DataFrame with one row per token, \
        its lemma, part of speech, head and dependency relation
    """
    return _parser.parse(texts, nlp_model, batch_size)


def textmodel_nb(
    dtm: pl.DataFrame,
    labels: Sequence,
    smooth: float = CONFIG.NB_SMOOTHING,
    prior: str = "uniform",
) -> NaiveBayesClassifier:
    """
    Fit a multinomial Naive Bayes classifier.

    :param dtm: A training document-term matrix
    :param labels: One class label per row of the dtm
    :param smooth: Additive smoothing
    :param prior: 'uniform' or 'docfreq'
    :return: A fitted NaiveBayesClassifier
    """
    return NaiveBayesClassifier(smooth, prior).fit(dtm, labels)


def topic_model(
    dtm: pl.DataFrame,
    n_topics: int = CONFIG.DEFAULT_N_TOPICS,
    seed: int = CONFIG.DEFAULT_SEED,
    max_iter: int = CONFIG.LDA_MAX_ITER,
) -> TopicModel:
    """
    Fit an LDA topic model.

    :param dtm: A document-term matrix of counts
    :param n_topics: The number of topics
    :param seed: Random seed for reproducible topics
    :param max_iter: Maximum number of passes over the data
    :return: A fitted TopicModel
    """
    return TopicModel(n_topics, seed, max_iter).fit(dtm)
