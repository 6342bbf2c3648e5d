"""
Tests for cleaning, tokenizing, token transformations and parsing.
"""

import pytest
import polars as pl

import quantext as qt
from quantext.processors import TextPreprocessor
from quantext.validation import (
    DataFormatError,
    ModelValidationError,
    ParameterValidationError,
    ValidationWarning,
)
from tests.conftest import assert_tokens_table_valid


class TestCleaning:
    def test_strip_html_and_lowercase(self):
        corpus = pl.DataFrame(
            {"doc_id": ["d1"], "text": ["<p>Hello <b>World</b></p>\n\n  again"]}
        )
        cleaned = qt.clean_text(corpus, strip_html=True, lowercase=True)
        assert cleaned["text"][0] == "hello world again"

    def test_docvars_are_kept(self, simple_corpus):
        cleaned = qt.clean_text(simple_corpus)
        assert cleaned.columns == simple_corpus.columns

    def test_curly_quotes(self):
        assert TextPreprocessor.replace_curly_quotes("“it’s”") == "\"it's\""

    def test_ascii(self):
        corpus = pl.DataFrame({"doc_id": ["d1"], "text": ["café naïve"]})
        assert qt.clean_text(corpus, ascii=True)["text"][0] == "cafe naive"


class TestTokenize:
    def test_token_positions(self, simple_corpus, nlp_blank):
        tokens = qt.tokenize(simple_corpus, nlp_blank)
        assert_tokens_table_valid(tokens)

        doc3 = tokens.filter(pl.col("doc_id") == "doc3")
        assert doc3["token"].to_list() == [
            "Jobs", "jobs", "jobs", "The", "economy", "needs", "jobs"
        ]
        # positions count the removed punctuation
        assert doc3["token_id"].to_list() == [1, 3, 5, 7, 8, 9, 10]

    def test_keep_punctuation(self, simple_corpus, nlp_blank):
        tokens = qt.tokenize(simple_corpus, nlp_blank, remove_punct=False)
        assert "," in tokens["token"].to_list()
        assert tokens.filter(pl.col("doc_id") == "doc1")["token"][-1] == "."

    def test_remove_numbers_and_symbols(self, nlp_blank):
        corpus = pl.DataFrame({"doc_id": ["d1"], "text": ["It cost $ 20 in 2019."]})
        tokens = qt.tokenize(
            corpus, nlp_blank, remove_numbers=True, remove_symbols=True
        )
        assert tokens["token"].to_list() == ["It", "cost", "in"]

    def test_default_pipeline(self, simple_corpus):
        tokens = qt.tokenize(simple_corpus)
        assert tokens.height == 21

    def test_null_and_empty_texts(self, nlp_blank):
        corpus = pl.DataFrame(
            {"doc_id": ["d1", "d2", "d3"], "text": [None, "", "Some words"]},
            schema={"doc_id": pl.String, "text": pl.String},
        )
        with pytest.warns(ValidationWarning):
            tokens = qt.tokenize(corpus, nlp_blank)
        assert tokens["doc_id"].unique().to_list() == ["d3"]

    def test_tokenize_rejects_tokens_table(self, simple_tokens, nlp_blank):
        with pytest.raises(qt.CorpusValidationError):
            qt.tokenize(simple_tokens, nlp_blank)


class TestTokensTransformations:
    def test_wordstem(self, simple_tokens):
        stems = qt.tokens_wordstem(simple_tokens)
        assert_tokens_table_valid(stems)
        stem_set = set(stems["token"].to_list())
        assert {"job", "terror", "grow", "economi"} <= stem_set
        assert stems.height == simple_tokens.height

    def test_wordstem_unknown_language(self, simple_tokens):
        with pytest.raises(ParameterValidationError):
            qt.tokens_wordstem(simple_tokens, language="klingon")

    def test_remove_fixed_is_case_insensitive(self, simple_corpus, nlp_blank):
        tokens = qt.tokenize(simple_corpus, nlp_blank)
        removed = qt.tokens_remove(tokens, ["the", "AND"])
        assert not {"The", "the", "and"} & set(removed["token"].to_list())
        assert removed.height == tokens.height - 4

    def test_remove_keeps_positions(self, simple_tokens):
        removed = qt.tokens_remove(simple_tokens, ["the"])
        doc3 = removed.filter(pl.col("doc_id") == "doc3")
        assert doc3["token_id"].to_list() == [1, 3, 5, 8, 9, 10]

    def test_select_glob(self, simple_tokens):
        selected = qt.tokens_select(simple_tokens, "terror*")
        assert selected["token"].to_list() == ["terror", "terrorism"]

    def test_keep_min_nchar(self, simple_tokens):
        kept = qt.tokens_keep_min_nchar(simple_tokens, 4)
        assert kept["token"].str.len_chars().min() >= 4

    def test_transform_rejects_corpus(self, simple_corpus):
        with pytest.raises(DataFormatError, match="tokenize"):
            qt.tokens_tolower(simple_corpus)


class TestStopwords:
    def test_spacy_stopwords(self):
        stopwords = qt.get_stopwords("en")
        assert "the" in stopwords
        assert "economy" not in stopwords

    def test_nltk_stopwords(self):
        try:
            stopwords = qt.get_stopwords("en", source="nltk")
        except LookupError:
            pytest.skip("NLTK stopwords could not be downloaded")
        assert "the" in stopwords

    def test_invalid_source(self):
        with pytest.raises(ParameterValidationError):
            qt.get_stopwords("en", source="quanteda")


class TestProcessCorpus:
    def test_full_pipeline(self, simple_corpus):
        tokens = qt.process_corpus(simple_corpus, stopwords=["the", "and"], stem=True)
        assert_tokens_table_valid(tokens)
        assert "the" not in tokens["token"].to_list()
        assert tokens.filter(pl.col("token") == "job").height == 5

    def test_html_is_stripped(self, corpus_with_issues):
        with pytest.warns(ValidationWarning):
            tokens = qt.process_corpus(corpus_with_issues)
        html = tokens.filter(pl.col("doc_id") == "html_doc")
        assert html["token"].to_list() == ["some", "bold", "text"]
        assert "empty_doc" not in tokens["doc_id"].to_list()


class TestDependencyParse:
    def test_blank_pipeline_rejected(self, nlp_blank):
        with pytest.raises(ModelValidationError):
            qt.dependency_parse("Mary loves John.", nlp_blank)

    def test_parse_sentence(self, parser_model):
        parsed = qt.dependency_parse(
            "Mary loves John, and she sent him a letter.", parser_model
        )
        assert parsed.columns == [
            "doc_id",
            "sentence_id",
            "token_id",
            "token",
            "lemma",
            "pos",
            "tag",
            "head_token_id",
            "dep_rel",
            "entity",
        ]
        root = parsed.filter(pl.col("dep_rel") == "ROOT")
        assert root["token"].to_list() == ["loves"]
        # a root heads itself
        assert root["head_token_id"][0] == root["token_id"][0]
        entities = [e for e in parsed["entity"].to_list() if e]
        assert all(e.endswith(("_B", "_I")) for e in entities)

    def test_parse_corpus(self, parser_model, simple_corpus):
        parsed = qt.dependency_parse(simple_corpus, parser_model)
        assert parsed["doc_id"].unique(maintain_order=True).to_list() == [
            "doc1", "doc2", "doc3"
        ]
