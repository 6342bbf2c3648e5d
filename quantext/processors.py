"""
Core processing classes for text cleaning, tokenization and parsing.

This module covers every step between a raw corpus and a tokens table:
cleaning the text, splitting it into tokens with spaCy, and transforming
those tokens (case-folding, stemming, stopword removal). It also wraps
spaCy's dependency parser. The classes are designed to work together as
a pipeline while also being usable independently.

Classes:
    CorpusValidator: Validates corpus data and spaCy models
    TextPreprocessor: Handles text cleaning and preprocessing
    SpacyTokenizer: Splits texts into tokens with a spaCy tokenizer
    TokensTransformer: Case-folds, stems and filters tokens tables
    DependencyParser: Produces dependency-annotated token tables
    CorpusProcessor: Main orchestrator for the complete pipeline

Example:
    Basic usage with the main processor::

        import polars as pl
        import spacy
        from quantext.processors import CorpusProcessor, get_stopwords

        corpus = pl.DataFrame({
            'doc_id': ['doc1', 'doc2'],
            'text': ['<p>First document.</p>', 'Second document.']
        })

        processor = CorpusProcessor()
        tokens = processor.process_corpus(
            corpus, spacy.blank('en'), stopwords=get_stopwords('en'), stem=True
        )

.. codeauthor:: quantext developers
"""

import unicodedata
from typing import Iterable, List, Optional, Set, Union

import nltk
import polars as pl
import spacy
from nltk.stem import SnowballStemmer
from spacy.language import Language
from spacy.tokens import Token

from .config import CONFIG, PATTERNS
from .corpus_utils import pattern_to_regex
from .performance import PerformanceMonitor, ProgressTracker
from .validation import (
    ModelValidationError,
    validate_choice_parameter,
    validate_corpus_dataframe,
    validate_tokens_dataframe,
)


TOKENS_SCHEMA = {"doc_id": pl.String, "token_id": pl.UInt32, "token": pl.String}

PARSE_SCHEMA = {
    "doc_id": pl.String,
    "sentence_id": pl.UInt32,
    "token_id": pl.UInt32,
    "token": pl.String,
    "lemma": pl.String,
    "pos": pl.String,
    "tag": pl.String,
    "head_token_id": pl.UInt32,
    "dep_rel": pl.String,
    "entity": pl.String,
}

_NLTK_LANGUAGES = {
    "da": "danish",
    "de": "german",
    "en": "english",
    "es": "spanish",
    "fr": "french",
    "it": "italian",
    "nl": "dutch",
    "pt": "portuguese",
}


def get_stopwords(language: str = CONFIG.DEFAULT_LANGUAGE,
                  source: str = "spacy") -> Set[str]:
    """
    Return a stopword list.

    :param language: A language code ('en') or, for NLTK, a language name.
    :param source: One of 'spacy' or 'nltk'. The NLTK list is downloaded \
        on first use.
    :return: A set of lowercase stopwords.
    """
    validate_choice_parameter("source", source, ["spacy", "nltk"], "in get_stopwords")

    if source == "spacy":
        return set(spacy.util.get_lang_class(language).Defaults.stop_words)

    try:
        nltk.data.find("corpora/stopwords")
    except LookupError:
        nltk.download("stopwords", quiet=True)

    from nltk.corpus import stopwords

    return set(stopwords.words(_NLTK_LANGUAGES.get(language, language)))


def _as_corpus(texts: Union[str, List[str], pl.DataFrame]) -> pl.DataFrame:
    """Turn a string, list of strings or corpus into a corpus DataFrame."""
    if isinstance(texts, pl.DataFrame):
        return texts
    if isinstance(texts, str):
        texts = [texts]
    return pl.DataFrame(
        {
            "doc_id": [f"text{i}" for i in range(1, len(texts) + 1)],
            "text": list(texts),
        },
        schema={"doc_id": pl.String, "text": pl.String},
    )


class CorpusValidator:
    """
    Validates corpus data and spaCy models for compatibility.

    Example:
        Validate a corpus before processing::

            import polars as pl
            from quantext.processors import CorpusValidator

            corpus = pl.DataFrame({
                'doc_id': ['doc1.txt', 'doc2.txt'],
                'text': ['First document.', 'Second document.']
            })

            # This will raise an exception if validation fails
            CorpusValidator.validate_corpus_schema(corpus)

        Validate a spaCy model before dependency parsing::

            import spacy

            nlp = spacy.load('en_core_web_sm')
            CorpusValidator.validate_parser_model(nlp)
    """

    @staticmethod
    def validate_corpus_schema(corp: pl.DataFrame) -> None:
        """Validate that corpus has 'doc_id' and 'text' columns."""
        validate_corpus_dataframe(corp, "in CorpusProcessor")

    @staticmethod
    def validate_tokens_schema(tokens_table: pl.DataFrame) -> None:
        """Validate that a tokens table has the expected schema."""
        validate_tokens_dataframe(tokens_table, "in TokensTransformer")

    @staticmethod
    def validate_parser_model(nlp_model: Language) -> None:
        """
        Validate that a spaCy pipeline can produce dependency parses.

        Args:
            nlp_model: A spaCy Language model instance.

        Raises:
            ModelValidationError: If the pipeline has no 'parser' component.

        Example:
            >>> import spacy
            >>> invalid_nlp = spacy.blank('en')
            >>> CorpusValidator.validate_parser_model(invalid_nlp)  # Raises exception
        """
        if "parser" not in nlp_model.pipe_names:
            raise ModelValidationError(
                "The spaCy pipeline has no 'parser' component "
                f"(components: {', '.join(nlp_model.pipe_names) or 'none'}). "
                "Load a trained pipeline such as "
                f"spacy.load('{CONFIG.DEFAULT_PARSER_MODEL}'); install it with "
                f"'python -m spacy download {CONFIG.DEFAULT_PARSER_MODEL}'."
            )


class TextPreprocessor:
    """
    Handles text cleaning ahead of tokenization.

    Example:
        Use individual cleaning methods::

            from quantext.processors import TextPreprocessor

            TextPreprocessor.strip_html("<b>Bold</b> claim")
            # Result: "Bold claim"

        Clean a whole corpus::

            clean_corpus = TextPreprocessor().preprocess_corpus(
                corpus, strip_html=True, lowercase=True
            )
    """

    @staticmethod
    def strip_html(text: str) -> str:
        """
        Remove HTML tags by replacing the pattern ``<.*?>`` with nothing.

        >>> TextPreprocessor.strip_html("<p>Hello <i>world</i></p>")
        'Hello world'
        """
        return PATTERNS.HTML_TAG.sub("", text)

    @staticmethod
    def squish_whitespace(text: str) -> str:
        """
        Collapse runs of spaces, returns and tabs into single spaces.

        >>> TextPreprocessor.squish_whitespace("Hello    world\\n\\ttest ")
        'Hello world test'
        """
        return PATTERNS.WHITESPACE.sub(" ", text).strip()

    @staticmethod
    def replace_curly_quotes(text: str) -> str:
        """Replace curly/smart quotes with straight ASCII quotes."""
        replacements = {
            "‘": "'",  # Left single quote
            "’": "'",  # Right single quote
            "“": '"',  # Left double quote
            "”": '"',  # Right double quote
        }

        for old, new in replacements.items():
            text = text.replace(old, new)
        return text

    @staticmethod
    def normalize_unicode(text: str) -> str:
        """
        Apply NFKD normalization and drop what cannot be represented in ASCII.

        >>> TextPreprocessor.normalize_unicode("café naïve")
        'cafe naive'
        """
        return (
            unicodedata.normalize("NFKD", text)
            .encode("ascii", errors="ignore")
            .decode("utf-8")
        )

    def preprocess_corpus(
        self,
        corp: pl.DataFrame,
        strip_html: bool = True,
        lowercase: bool = False,
        squish: bool = True,
        fix_quotes: bool = True,
        ascii: bool = False,
    ) -> pl.DataFrame:
        """
        Apply the selected cleaning steps to the 'text' column of a corpus.

        Args:
            corp: A polars DataFrame with 'doc_id' and 'text' columns.
            strip_html: Remove HTML tags.
            lowercase: Convert text to lowercase.
            squish: Normalize whitespace.
            fix_quotes: Replace curly quotes with straight ones.
            ascii: Reduce text to ASCII characters.

        Returns:
            The corpus with a cleaned 'text' column; document variables
            are kept.
        """
        validate_corpus_dataframe(corp, "in preprocess_corpus")

        text = pl.col("text")
        if strip_html:
            text = text.str.replace_all(PATTERNS.HTML_TAG_STR, "")
        if lowercase:
            text = text.str.to_lowercase()
        corp = corp.with_columns(text)

        if fix_quotes:
            corp = corp.with_columns(
                pl.col("text").map_elements(
                    self.replace_curly_quotes, return_dtype=pl.String
                )
            )
        if ascii:
            corp = corp.with_columns(
                pl.col("text").map_elements(
                    self.normalize_unicode, return_dtype=pl.String
                )
            )
        if squish:
            corp = corp.with_columns(
                pl.col("text").str.replace_all(r"\s+", " ").str.strip_chars()
            )
        return corp


class SpacyTokenizer:
    """Splits corpus texts into a tokens table with a spaCy tokenizer."""

    @staticmethod
    def is_symbol(token: Token) -> bool:
        return token.is_currency or bool(PATTERNS.SYMBOL_ONLY.match(token.text))

    @classmethod
    def is_punctuation(cls, token: Token) -> bool:
        if cls.is_symbol(token):
            return False
        return token.is_punct or bool(PATTERNS.PUNCTUATION_ONLY.match(token.text))

    def tokenize(
        self,
        corp: pl.DataFrame,
        nlp_model: Language,
        remove_punct: bool = True,
        remove_numbers: bool = False,
        remove_symbols: bool = False,
        batch_size: int = CONFIG.DEFAULT_BATCH_SIZE,
    ) -> pl.DataFrame:
        """
        Tokenize the texts of a corpus.

        Only the pipeline's tokenizer runs, so ``spacy.blank('en')`` is
        enough. Whitespace tokens are always dropped. Documents with null
        text are skipped.

        :param corp: A corpus DataFrame
        :param nlp_model: A spaCy Language instance
        :param remove_punct: Drop punctuation tokens
        :param remove_numbers: Drop tokens that look like numbers
        :param remove_symbols: Drop currency and other symbol tokens
        :param batch_size: Batch size passed to the spaCy tokenizer
        :return: A tokens table with 'doc_id', 'token_id' and 'token'
        """
        validate_corpus_dataframe(corp, "in tokenize")
        corp = corp.filter(pl.col("text").is_not_null())

        doc_ids = corp.get_column("doc_id").to_list()
        texts = corp.get_column("text").to_list()

        progress = ProgressTracker(len(texts), "Tokenizing")

        out_doc_ids = []
        out_token_ids = []
        out_tokens = []

        docs = nlp_model.tokenizer.pipe(texts, batch_size=batch_size)
        for doc_id, doc in zip(doc_ids, docs):
            for token in doc:
                if token.is_space or token.text.strip() == "":
                    continue
                if remove_punct and self.is_punctuation(token):
                    continue
                if remove_numbers and token.like_num:
                    continue
                if remove_symbols and self.is_symbol(token):
                    continue
                out_doc_ids.append(doc_id)
                out_token_ids.append(token.i + 1)
                out_tokens.append(token.text)
            progress.update()

        progress.finish()

        return pl.DataFrame(
            {"doc_id": out_doc_ids, "token_id": out_token_ids, "token": out_tokens},
            schema=TOKENS_SCHEMA,
        )


class TokensTransformer:
    """Handles transformations of tokens tables."""

    @staticmethod
    def _pattern_expr(
        patterns: Union[str, Iterable[str]], valuetype: str, case_insensitive: bool
    ) -> pl.Expr:
        if isinstance(patterns, str):
            patterns = [patterns]
        patterns = list(patterns)

        # large fixed lists such as stopwords are cheaper as set membership
        if valuetype == "fixed":
            if case_insensitive:
                return pl.col("token").str.to_lowercase().is_in(
                    [p.lower() for p in patterns]
                )
            return pl.col("token").is_in(patterns)

        return pl.col("token").str.contains(
            pattern_to_regex(patterns, valuetype, case_insensitive)
        )

    def tokens_tolower(self, tokens_table: pl.DataFrame) -> pl.DataFrame:
        """Convert all tokens to lowercase."""
        validate_tokens_dataframe(tokens_table, "in tokens_tolower")
        return tokens_table.with_columns(pl.col("token").str.to_lowercase())

    def tokens_wordstem(
        self,
        tokens_table: pl.DataFrame,
        language: str = CONFIG.DEFAULT_STEM_LANGUAGE,
    ) -> pl.DataFrame:
        """
        Reduce tokens to their stems with the NLTK Snowball stemmer.

        :param tokens_table: A tokens table
        :param language: A Snowball language name, e.g. 'english'
        :return: A tokens table of stems
        """
        validate_tokens_dataframe(tokens_table, "in tokens_wordstem")
        validate_choice_parameter(
            "language",
            language,
            list(SnowballStemmer.languages),
            "in tokens_wordstem",
        )
        stemmer = SnowballStemmer(language)
        return tokens_table.with_columns(
            pl.col("token").map_elements(stemmer.stem, return_dtype=pl.String)
        )

    def tokens_remove(
        self,
        tokens_table: pl.DataFrame,
        patterns: Union[str, Iterable[str]],
        valuetype: str = "fixed",
        case_insensitive: bool = True,
    ) -> pl.DataFrame:
        """
        Remove tokens matching any of the patterns (e.g. a stopword list).

        :param tokens_table: A tokens table
        :param patterns: A pattern or collection of patterns
        :param valuetype: 'fixed', 'glob' or 'regex' (see pattern_to_regex)
        :param case_insensitive: Whether matching ignores case
        :return: The tokens table without matching tokens
        """
        validate_tokens_dataframe(tokens_table, "in tokens_remove")
        return tokens_table.filter(
            ~self._pattern_expr(patterns, valuetype, case_insensitive)
        )

    def tokens_select(
        self,
        tokens_table: pl.DataFrame,
        patterns: Union[str, Iterable[str]],
        valuetype: str = "glob",
        case_insensitive: bool = True,
    ) -> pl.DataFrame:
        """Keep only tokens matching any of the patterns."""
        validate_tokens_dataframe(tokens_table, "in tokens_select")
        return tokens_table.filter(
            self._pattern_expr(patterns, valuetype, case_insensitive)
        )

    def tokens_keep_min_nchar(
        self, tokens_table: pl.DataFrame, min_nchar: int = 2
    ) -> pl.DataFrame:
        """Drop tokens shorter than ``min_nchar`` characters."""
        validate_tokens_dataframe(tokens_table, "in tokens_keep_min_nchar")
        return tokens_table.filter(pl.col("token").str.len_chars() >= min_nchar)


class DependencyParser:
    """Handles spaCy dependency parsing."""

    def parse(
        self,
        texts: Union[str, List[str], pl.DataFrame],
        nlp_model: Language,
        batch_size: int = CONFIG.DEFAULT_BATCH_SIZE,
    ) -> pl.DataFrame:
        """
        Parse texts into a dependency-annotated token table.

        Token ids count from 1 within each sentence, and a sentence root
        is its own head. Entities are written as type and IOB position,
        e.g. 'PERSON_B'.

        :param texts: A sentence, a list of texts, or a corpus DataFrame
        :param nlp_model: A spaCy pipeline with a 'parser' component
        :param batch_size: Batch size passed to ``nlp.pipe``
        :return: A polars DataFrame with doc_id, sentence_id, token_id,
            token, lemma, pos, tag, head_token_id, dep_rel and entity
        """
        CorpusValidator.validate_parser_model(nlp_model)
        corp = _as_corpus(texts)
        validate_corpus_dataframe(corp, "in dependency_parse")
        corp = corp.filter(pl.col("text").is_not_null())

        rows = {name: [] for name in PARSE_SCHEMA}

        with PerformanceMonitor("Dependency parsing"):
            docs = nlp_model.pipe(
                corp.get_column("text").to_list(), batch_size=batch_size
            )
            for doc_id, doc in zip(corp.get_column("doc_id").to_list(), docs):
                for sentence_id, sent in enumerate(doc.sents, start=1):
                    for token in sent:
                        if token.is_space:
                            continue
                        entity = (
                            f"{token.ent_type_}_{token.ent_iob_}"
                            if token.ent_type_
                            else ""
                        )
                        rows["doc_id"].append(doc_id)
                        rows["sentence_id"].append(sentence_id)
                        rows["token_id"].append(token.i - sent.start + 1)
                        rows["token"].append(token.text)
                        rows["lemma"].append(token.lemma_)
                        rows["pos"].append(token.pos_)
                        rows["tag"].append(token.tag_)
                        rows["head_token_id"].append(token.head.i - sent.start + 1)
                        rows["dep_rel"].append(token.dep_)
                        rows["entity"].append(entity)

        return pl.DataFrame(rows, schema=PARSE_SCHEMA)


class CorpusProcessor:
    """Main class that orchestrates clean, tokenize and transform."""

    def __init__(self):
        self.validator = CorpusValidator()
        self.preprocessor = TextPreprocessor()
        self.tokenizer = SpacyTokenizer()
        self.transformer = TokensTransformer()

    def process_corpus(
        self,
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
        Process a corpus into a tokens table using the complete pipeline.

        Stopwords are removed before stemming, so a plain stopword list
        works as given.

        :param corp: A polars DataFrame containing 'doc_id' and 'text' columns.
        :param nlp_model: A spaCy Language instance. \
            Defaults to a blank pipeline for CONFIG.DEFAULT_LANGUAGE.
        :param strip_html: Remove HTML tags before tokenizing.
        :param lowercase: Case-fold the tokens.
        :param remove_punct: Drop punctuation tokens.
        :param remove_numbers: Drop number-like tokens.
        :param remove_symbols: Drop symbol tokens.
        :param stopwords: Tokens to remove (case-insensitive), or None.
        :param stem: Reduce tokens to Snowball stems.
        :param stem_language: The Snowball language.
        :param min_nchar: Minimum token length kept.
        :param batch_size: The batch size to use during tokenization.
        :return: A tokens table.
        """
        with PerformanceMonitor("Corpus processing"):
            self.validator.validate_corpus_schema(corp)
            if nlp_model is None:
                nlp_model = spacy.blank(CONFIG.DEFAULT_LANGUAGE)

            corp = self.preprocessor.preprocess_corpus(corp, strip_html=strip_html)
            tokens = self.tokenizer.tokenize(
                corp,
                nlp_model,
                remove_punct=remove_punct,
                remove_numbers=remove_numbers,
                remove_symbols=remove_symbols,
                batch_size=batch_size,
            )
            if lowercase:
                tokens = self.transformer.tokens_tolower(tokens)
            if stopwords is not None:
                tokens = self.transformer.tokens_remove(tokens, stopwords)
            if stem:
                tokens = self.transformer.tokens_wordstem(tokens, stem_language)
            if min_nchar > 1:
                tokens = self.transformer.tokens_keep_min_nchar(tokens, min_nchar)

            return tokens
