"""
Tests for loading corpora and document-term matrix utilities.
"""

import math
import re

import pytest
import polars as pl
import requests

import quantext as qt
from quantext import corpus_utils
from quantext.validation import (
    CorpusValidationError,
    DataFormatError,
    FileSystemError,
    ParameterValidationError,
)


class FakeResponse:
    def __init__(self, content: bytes, status_code: int = 200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "speeches.csv"
    path.write_text(
        "speaker,text,year\n"
        "A,Hello world,2001\n"
        'B,"Second text, with a comma",2005\n',
        encoding="utf-8",
    )
    return path


class TestReadText:
    def test_corpus_from_folder(self, tmp_path):
        (tmp_path / "b.txt").write_text("  Second document. ", encoding="utf-8")
        (tmp_path / "a.txt").write_text("First document.", encoding="utf-8")
        (tmp_path / "notes.md").write_text("ignored", encoding="utf-8")

        corpus = qt.corpus_from_folder(str(tmp_path))

        assert corpus.columns == ["doc_id", "text"]
        assert corpus["doc_id"].to_list() == ["a.txt", "b.txt"]
        assert corpus["text"].to_list() == ["First document.", "Second document."]

    def test_get_text_paths_recursive(self, tmp_path):
        sub = tmp_path / "sub"
        sub.mkdir()
        (tmp_path / "top.txt").write_text("top", encoding="utf-8")
        (sub / "nested.txt").write_text("nested", encoding="utf-8")

        assert len(qt.get_text_paths(str(tmp_path))) == 1
        assert len(qt.get_text_paths(str(tmp_path), recursive=True)) == 2

    def test_corpus_from_folder_without_text_files(self, tmp_path):
        (tmp_path / "data.csv").write_text("text\nhello\n", encoding="utf-8")
        with pytest.raises(FileSystemError, match="readtext_table"):
            qt.corpus_from_folder(str(tmp_path))

    def test_corpus_from_missing_folder(self, tmp_path):
        with pytest.raises(FileSystemError):
            qt.corpus_from_folder(str(tmp_path / "nope"))


class TestReadTextTable:
    def test_local_file_with_generated_ids(self, csv_file):
        corpus = qt.readtext_table(csv_file, text_field="text")

        assert corpus.columns == ["doc_id", "text", "speaker", "year"]
        assert corpus["doc_id"].to_list() == ["text1", "text2"]
        assert corpus["text"][1] == "Second text, with a comma"

    def test_local_file_with_docid_field(self, csv_file):
        corpus = qt.readtext_table(csv_file, text_field="text", docid_field="speaker")

        assert corpus.columns == ["doc_id", "text", "year"]
        assert corpus["doc_id"].to_list() == ["A", "B"]

    def test_missing_text_field(self, csv_file):
        with pytest.raises(DataFormatError, match="texts"):
            qt.readtext_table(csv_file, text_field="texts")

    def test_missing_local_file(self, tmp_path):
        with pytest.raises(FileSystemError):
            qt.readtext_table(tmp_path / "missing.csv")

    def test_duplicate_docids_rejected(self, tmp_path):
        path = tmp_path / "dupes.csv"
        path.write_text("id,text\nx,one\nx,two\n", encoding="utf-8")
        with pytest.raises(CorpusValidationError):
            qt.readtext_table(path, docid_field="id")

    def test_url_is_fetched_once(self, monkeypatch):
        calls = []

        def fake_get(url, timeout):
            calls.append((url, timeout))
            return FakeResponse(b"texts,President\nFellow citizens,Obama\n")

        monkeypatch.setattr(corpus_utils.requests, "get", fake_get)

        corpus = qt.readtext_table("https://example.org/inaugural.csv", text_field="texts")

        assert len(calls) == 1
        assert calls[0][1] == qt.ProcessingConfig().HTTP_TIMEOUT
        assert corpus.columns == ["doc_id", "text", "President"]
        assert corpus["text"][0] == "Fellow citizens"

    def test_http_errors_propagate(self, monkeypatch):
        monkeypatch.setattr(
            corpus_utils.requests,
            "get",
            lambda url, timeout: FakeResponse(b"", status_code=404),
        )
        with pytest.raises(requests.HTTPError):
            qt.readtext_table("https://example.org/missing.csv")

    def test_columns_named_like_corpus_fields_are_kept(self, tmp_path):
        path = tmp_path / "inaugural.csv"
        path.write_text(
            "texts,text,President\nFellow citizens,draft,Obama\n", encoding="utf-8"
        )
        corpus = qt.readtext_table(path, text_field="texts")

        assert corpus.columns == ["doc_id", "text", "text_docvar", "President"]
        assert corpus["text"][0] == "Fellow citizens"
        assert corpus["text_docvar"][0] == "draft"

    def test_same_column_for_text_and_docid(self, tmp_path):
        path = tmp_path / "names.csv"
        path.write_text("name,year\nfirst,2001\nsecond,2005\n", encoding="utf-8")
        corpus = qt.readtext_table(path, text_field="name", docid_field="name")
        assert corpus.columns == ["doc_id", "text", "year"]

    def test_corpus_docvars(self, simple_corpus):
        docvars = qt.corpus_docvars(simple_corpus)
        assert docvars.columns == ["doc_id", "speaker", "party"]


class TestDtmWeight:
    def test_count_is_unchanged(self, simple_dtm):
        assert qt.dtm_weight(simple_dtm, "count").equals(simple_dtm)

    def test_prop_rows_sum_to_one(self, simple_dtm):
        weighted = qt.dtm_weight(simple_dtm, "prop")
        totals = weighted.select(pl.sum_horizontal(pl.selectors.numeric()))
        for total in totals.to_series().to_list():
            assert total == pytest.approx(1.0)

    def test_boolean(self, simple_dtm):
        weighted = qt.dtm_weight(simple_dtm, "boolean")
        assert weighted["jobs"].to_list() == [1, 0, 1]

    def test_tfidf(self, simple_dtm):
        weighted = qt.dtm_weight(simple_dtm, "tfidf")
        # 'jobs' occurs in 2 of 3 documents, 4 times in doc3
        assert weighted["jobs"][2] == pytest.approx(4 * math.log10(3 / 2))
        assert weighted["jobs"][1] == pytest.approx(0.0)

    def test_scale_gives_z_scores(self, simple_dtm):
        weighted = qt.dtm_weight(simple_dtm, "scale")
        jobs = weighted["jobs"]
        assert jobs.mean() == pytest.approx(0.0, abs=1e-12)
        assert jobs.std() == pytest.approx(1.0)
        # doc3 has the highest share of 'jobs'
        assert jobs.arg_max() == 2

    def test_scale_constant_feature_is_zero(self):
        dtm = pl.DataFrame(
            {"doc_id": ["d1", "d2", "d3"], "tax": [1, 3, 2], "zero": [0, 0, 0]},
            schema={"doc_id": pl.String, "tax": pl.UInt32, "zero": pl.UInt32},
        )
        weighted = qt.dtm_weight(dtm, "scale")
        assert weighted["zero"].to_list() == [0.0, 0.0, 0.0]
        assert not weighted["tax"].is_nan().any()

    def test_scale_single_document(self):
        dtm = pl.DataFrame(
            {"doc_id": ["d1"], "tax": [2]},
            schema={"doc_id": pl.String, "tax": pl.UInt32},
        )
        assert qt.dtm_weight(dtm, "scale")["tax"].to_list() == [0.0]

    def test_invalid_scheme(self, simple_dtm):
        with pytest.raises(ParameterValidationError, match="Did you mean"):
            qt.dtm_weight(simple_dtm, "tf-idf")

    def test_dtm_to_coo(self, simple_dtm):
        coo, docs, vocab = qt.dtm_to_coo(simple_dtm)
        assert coo.shape == (simple_dtm.height, simple_dtm.width - 1)
        assert docs == ["doc1", "doc2", "doc3"]
        assert vocab[0] == "jobs"


class TestPatternToRegex:
    def test_glob_is_anchored(self):
        regex = re.compile(qt.pattern_to_regex("terror*"))
        assert regex.search("terrorism")
        assert regex.search("Terror")
        assert not regex.search("antiterror")

    def test_fixed_escapes_metacharacters(self):
        regex = re.compile(qt.pattern_to_regex("u.s.", valuetype="fixed"))
        assert regex.search("u.s.")
        assert not regex.search("uxsx")

    def test_multiple_patterns(self):
        regex = re.compile(qt.pattern_to_regex(["job*", "econom*"]))
        assert regex.search("jobs")
        assert regex.search("economy")
        assert not regex.search("business")

    def test_case_sensitive(self):
        regex = re.compile(qt.pattern_to_regex("Jobs", "fixed", case_insensitive=False))
        assert regex.search("Jobs")
        assert not regex.search("jobs")

    def test_pattern_works_in_polars(self):
        tokens = pl.Series(["terror", "terrorists", "error"])
        matched = tokens.str.contains(qt.pattern_to_regex("terror*"))
        assert matched.to_list() == [True, True, False]
