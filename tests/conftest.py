"""
Pytest configuration and shared fixtures for quantext tests.

This module provides shared test fixtures, utilities, and configuration
for the quantext test suite.
"""

import pytest
import polars as pl
import spacy

import quantext as qt
from quantext import data


@pytest.fixture(scope="session")
def nlp_blank():
    """A blank English pipeline; only its tokenizer is used."""
    return spacy.blank("en")


@pytest.fixture(scope="session")
def parser_model():
    """Load a pretrained spaCy pipeline with a dependency parser."""
    try:
        return spacy.load("en_core_web_sm")
    except OSError:
        pytest.skip("spaCy model 'en_core_web_sm' not available")


@pytest.fixture(scope="session")
def simple_corpus():
    """Create a simple test corpus with two document variables."""
    return pl.DataFrame(
        {
            "doc_id": ["doc1", "doc2", "doc3"],
            "text": [
                "The economy is growing and jobs are back.",
                "Terror threats and terrorism worry voters.",
                "Jobs, jobs, jobs! The economy needs jobs.",
            ],
            "speaker": ["A", "B", "A"],
            "party": ["x", "y", "x"],
        }
    )


@pytest.fixture(scope="session")
def simple_docvars(simple_corpus):
    return qt.corpus_docvars(simple_corpus)


@pytest.fixture(scope="session")
def simple_tokens(simple_corpus, nlp_blank):
    """Lowercased tokens of the simple corpus, punctuation removed."""
    return qt.tokens_tolower(qt.tokenize(simple_corpus, nlp_blank))


@pytest.fixture(scope="session")
def simple_dtm(simple_tokens):
    return qt.tokens_dtm(simple_tokens)


@pytest.fixture(scope="session")
def demo_corpus():
    """The bundled demo corpus."""
    return data.demo_corpus


@pytest.fixture(scope="session")
def demo_tokens(demo_corpus):
    return qt.process_corpus(demo_corpus, stopwords=qt.get_stopwords("en"))


@pytest.fixture(scope="session")
def demo_dtm(demo_tokens):
    return qt.tokens_dtm(demo_tokens)


@pytest.fixture
def toy_dtm():
    """Two documents with mirrored counts of two features."""
    return pl.DataFrame(
        {"doc_id": ["A", "B"], "apple": [20, 5], "pear": [5, 20]},
        schema={"doc_id": pl.String, "apple": pl.UInt32, "pear": pl.UInt32},
    )


@pytest.fixture
def corpus_with_issues():
    """Create a corpus with various edge cases for error testing."""
    return pl.DataFrame(
        {
            "doc_id": [
                "empty_doc",
                "normal_doc",
                "special_chars_doc",
                "html_doc",
                "unicode_doc",
            ],
            "text": [
                "",  # Empty document
                "This is a normal document.",  # Normal document
                "Special chars: @#$%^&*()_+ {}[]|\\:;\"'<>,.?/~`",  # Special characters
                "<p>Some <b>bold</b> text</p>",  # HTML
                "Unicode test: café naïve résumé Москва",  # Unicode
            ],
        }
    )


@pytest.fixture
def invalid_corpus_data():
    """Create various invalid corpus formats for error testing."""
    return {
        "missing_doc_id": pl.DataFrame({"text": ["Some text without doc_id"]}),
        "missing_text": pl.DataFrame({"doc_id": ["doc1"]}),
        "wrong_types": pl.DataFrame(
            {
                "doc_id": [1, 2, 3],  # Should be strings
                "text": ["text1", "text2", "text3"],
            }
        ),
        "duplicate_ids": pl.DataFrame(
            {
                "doc_id": ["doc1", "doc1", "doc2"],
                "text": ["text1", "text2", "text3"],
            }
        ),
        "null_ids": pl.DataFrame(
            {"doc_id": ["doc1", None, "doc3"], "text": ["text1", "text2", "text3"]}
        ),
    }


# Test utilities
def assert_dataframe_structure(
    df: pl.DataFrame, expected_columns: list, min_rows: int = 0
):
    """Assert that a DataFrame has the expected structure."""
    assert isinstance(df, pl.DataFrame), "Result should be a polars DataFrame"
    assert df.height >= min_rows, f"DataFrame should have at least {min_rows} rows"

    for col in expected_columns:
        assert col in df.columns, f"Column '{col}' should be present"


def assert_frequency_table_valid(freq_table: pl.DataFrame):
    """Assert that a frequency table has valid structure and content."""
    assert_dataframe_structure(freq_table, ["Token", "AF", "RF", "Range"])

    assert freq_table["AF"].dtype in [pl.UInt32, pl.Int64], "AF should be integer type"
    assert freq_table["RF"].dtype in [pl.Float64, pl.Float32], "RF should be float type"

    if freq_table.height > 0:
        assert (freq_table["AF"] >= 0).all(), "All AF values should be non-negative"
        assert (freq_table["Range"] <= 100).all(), "All Range values should be <= 100"


def assert_tokens_table_valid(tokens_table: pl.DataFrame):
    """Assert that a tokens table has the expected schema."""
    assert tokens_table.schema == {
        "doc_id": pl.String,
        "token_id": pl.UInt32,
        "token": pl.String,
    }
    if tokens_table.height > 0:
        assert not tokens_table["token"].is_null().any(), "No tokens should be null"


def assert_dtm_valid(dtm: pl.DataFrame):
    """Assert that a document-term matrix is well formed."""
    assert dtm.columns[0] == "doc_id"
    assert all(dtype.is_numeric() for dtype in dtm.drop("doc_id").dtypes)
    assert dtm.get_column("doc_id").n_unique() == dtm.height
