"""
quantext: A walkthrough of quantitative text analysis in Python.

This package provides tools for loading, cleaning and tokenizing text
corpora, building and weighting document-term matrices, and running
dictionary, classification, topic model, keyness, n-gram, concordance
and dependency analyses on top of polars, spaCy, NLTK, scikit-learn
and SciPy.

.. codeauthor:: quantext developers
"""

# Core analysis functions
from .corpus_analysis import (
    clean_text,
    tokenize,
    process_corpus,
    tokens_tolower,
    tokens_wordstem,
    tokens_remove,
    tokens_select,
    tokens_keep_min_nchar,
    tokens_dtm,
    dtm_trim,
    dtm_select,
    dtm_subset,
    dtm_group,
    dtm_match,
    frequency_table,
    topfeatures,
    dictionary_lookup,
    tokens_ngrams,
    ngrams,
    kwic,
    keyness_table,
    dtm_keyness,
    dependency_parse,
    textmodel_nb,
    topic_model,
)

# Utility functions
from .corpus_utils import (
    get_text_paths,
    readtext,
    corpus_from_folder,
    readtext_table,
    corpus_docvars,
    dtm_weight,
    dtm_to_coo,
    pattern_to_regex,
)

# Modular analyzers, processors and models
from .analyzers import (
    FrequencyAnalyzer,
    DTMAnalyzer,
    DictionaryAnalyzer,
    NGramAnalyzer,
    KWICAnalyzer,
    KeynessAnalyzer,
)

from .processors import (
    get_stopwords,
    CorpusValidator,
    TextPreprocessor,
    SpacyTokenizer,
    TokensTransformer,
    DependencyParser,
    CorpusProcessor,
)

from .models import (
    split_train_test,
    align_labels,
    classification_table,
    classification_scores,
    classification_accuracy,
    NaiveBayesClassifier,
    TopicModel,
)

# Configuration
from .config import ProcessingConfig, RegexPatterns

# Performance utilities
from .performance import (
    ProgressTracker,
    PerformanceMonitor,
    optimize_polars_settings,
)

# Validation and error handling
from .validation import (
    # Exception classes
    QuantextError,
    CorpusValidationError,
    ModelValidationError,
    DataFormatError,
    ParameterValidationError,
    FileSystemError,
    ValidationWarning,
    PerformanceWarning,
    # Validation functions
    validate_corpus_dataframe,
    validate_tokens_dataframe,
    validate_dtm,
    validate_directory_path,
    validate_text_files_in_directory,
    validate_choice_parameter,
    validate_span_parameter,
    validate_frequency_tables,
    validate_dictionary,
    suggest_alternatives_for_empty_results,
)

# Package metadata
__version__ = "0.1.0"
__author__ = "quantext developers"

# Public API - define what gets imported with "from quantext import *"
__all__ = [
    # Core analysis functions
    "clean_text",
    "tokenize",
    "process_corpus",
    "tokens_tolower",
    "tokens_wordstem",
    "tokens_remove",
    "tokens_select",
    "tokens_keep_min_nchar",
    "tokens_dtm",
    "dtm_trim",
    "dtm_select",
    "dtm_subset",
    "dtm_group",
    "dtm_match",
    "frequency_table",
    "topfeatures",
    "dictionary_lookup",
    "tokens_ngrams",
    "ngrams",
    "kwic",
    "keyness_table",
    "dtm_keyness",
    "dependency_parse",
    "textmodel_nb",
    "topic_model",
    # Utility functions
    "get_text_paths",
    "readtext",
    "corpus_from_folder",
    "readtext_table",
    "corpus_docvars",
    "dtm_weight",
    "dtm_to_coo",
    "pattern_to_regex",
    # Analyzers, processors and models
    "FrequencyAnalyzer",
    "DTMAnalyzer",
    "DictionaryAnalyzer",
    "NGramAnalyzer",
    "KWICAnalyzer",
    "KeynessAnalyzer",
    "get_stopwords",
    "CorpusValidator",
    "TextPreprocessor",
    "SpacyTokenizer",
    "TokensTransformer",
    "DependencyParser",
    "CorpusProcessor",
    "split_train_test",
    "align_labels",
    "classification_table",
    "classification_scores",
    "classification_accuracy",
    "NaiveBayesClassifier",
    "TopicModel",
    # Configuration
    "ProcessingConfig",
    "RegexPatterns",
    # Performance utilities
    "ProgressTracker",
    "PerformanceMonitor",
    "optimize_polars_settings",
    # Validation and error handling
    "QuantextError",
    "CorpusValidationError",
    "ModelValidationError",
    "DataFormatError",
    "ParameterValidationError",
    "FileSystemError",
    "ValidationWarning",
    "PerformanceWarning",
    "validate_corpus_dataframe",
    "validate_tokens_dataframe",
    "validate_dtm",
    "validate_directory_path",
    "validate_text_files_in_directory",
    "validate_choice_parameter",
    "validate_span_parameter",
    "validate_frequency_tables",
    "validate_dictionary",
    "suggest_alternatives_for_empty_results",
]
