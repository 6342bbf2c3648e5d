"""
Configuration constants for quantext.

.. codeauthor:: quantext developers
"""

from dataclasses import dataclass
import re


@dataclass
class ProcessingConfig:
    """Configuration constants for the walkthrough and its helpers."""

    # Remote demo corpus (one-time fetch)
    DEMO_URL: str = "https://bit.ly/2uhqjJE?.csv"
    DEMO_TEXT_FIELD: str = "texts"
    DEMO_GROUP_FIELD: str = "President"
    DEMO_KEYNESS_TARGET: str = "Obama"
    DEMO_LABEL_FIELD: str = "Party"
    HTTP_TIMEOUT: int = 30

    # Bundled offline corpus
    OFFLINE_GROUP_FIELD: str = "source"
    OFFLINE_KEYNESS_TARGET: str = "Clark"
    OFFLINE_LABEL_FIELD: str = "topic"

    # Language defaults
    DEFAULT_LANGUAGE: str = "en"
    DEFAULT_STEM_LANGUAGE: str = "english"
    DEFAULT_PARSER_MODEL: str = "en_core_web_sm"
    DEMO_SENTENCE: str = "Mary loves John, and she sent him a letter."

    # Normalization factors
    FREQUENCY_NORMALIZATION_FACTOR: int = 1000000

    # spaCy processing defaults
    DEFAULT_BATCH_SIZE: int = 25

    # KWIC defaults
    KWIC_WINDOW: int = 5

    # Modeling defaults
    DEFAULT_SEED: int = 1
    DEFAULT_TEST_SIZE: float = 0.2
    NB_SMOOTHING: float = 1.0
    DEFAULT_N_TOPICS: int = 10
    LDA_MAX_ITER: int = 20
    TOP_TERMS: int = 10

    # Progress and display
    PROGRESS_THRESHOLD: int = 5000  # documents to show progress
    SLOW_OPERATION_SECONDS: float = 5.0
    WIDE_DTM_CELLS: int = 50_000_000  # dense cells before warning
    TABLE_ROWS: int = 20
    TABLE_COLS: int = 10


@dataclass
class RegexPatterns:
    """Compiled regex patterns for text processing."""

    HTML_TAG = re.compile(r"<.*?>")
    PUNCTUATION_ONLY = re.compile(r"^[!-/:-@\[-`{-~]+$")
    SYMBOL_ONLY = re.compile(r"^[$+<=>^`|~¢-©®-±´×÷]+$")
    WHITESPACE = re.compile(r"\s+")
    # For Polars string operations, we need the pattern as a string
    HTML_TAG_STR = r"<.*?>"


# Global configuration instance
CONFIG = ProcessingConfig()
PATTERNS = RegexPatterns()
