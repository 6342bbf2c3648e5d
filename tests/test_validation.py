"""
Tests for error handling, validation and performance utilities.
"""

import pytest
import polars as pl

import quantext as qt
from quantext import config
from quantext.validation import (
    CorpusValidationError,
    DataFormatError,
    FileSystemError,
    ParameterValidationError,
    PerformanceWarning,
    QuantextError,
    ValidationWarning,
    validate_choice_parameter,
    validate_corpus_dataframe,
    validate_dictionary,
    validate_directory_path,
    validate_dtm,
    validate_span_parameter,
    validate_tokens_dataframe,
)


class TestCorpusValidation:
    def test_valid_corpus(self, simple_corpus):
        validate_corpus_dataframe(simple_corpus)

    @pytest.mark.parametrize(
        "case",
        ["missing_doc_id", "missing_text", "wrong_types", "duplicate_ids", "null_ids"],
    )
    def test_invalid_corpora(self, invalid_corpus_data, case):
        with pytest.raises(CorpusValidationError):
            validate_corpus_dataframe(invalid_corpus_data[case])

    def test_none_and_empty(self):
        with pytest.raises(CorpusValidationError, match="None"):
            validate_corpus_dataframe(None)
        empty = pl.DataFrame(schema={"doc_id": pl.String, "text": pl.String})
        with pytest.raises(CorpusValidationError, match="empty"):
            validate_corpus_dataframe(empty)

    def test_empty_text_warns(self, corpus_with_issues):
        with pytest.warns(ValidationWarning, match="empty text"):
            validate_corpus_dataframe(corpus_with_issues)

    def test_errors_share_a_base_class(self, invalid_corpus_data):
        with pytest.raises(QuantextError):
            qt.tokenize(invalid_corpus_data["missing_text"])


class TestTableValidation:
    def test_corpus_passed_as_tokens(self, simple_corpus):
        with pytest.raises(DataFormatError, match="tokenize"):
            validate_tokens_dataframe(simple_corpus)

    def test_tokens_with_wrong_types(self):
        tokens = pl.DataFrame(
            {"doc_id": ["d1"], "token_id": [1], "token": ["a"]}
        )  # token_id is Int64
        with pytest.raises(DataFormatError):
            validate_tokens_dataframe(tokens)

    def test_dtm_with_docvars(self, simple_dtm):
        with pytest.raises(DataFormatError, match="docvars"):
            validate_dtm(simple_dtm.with_columns(pl.lit("A").alias("speaker")))

    def test_dtm_without_doc_id_first(self, simple_dtm):
        with pytest.raises(DataFormatError):
            validate_dtm(simple_dtm.select(["jobs", "doc_id"]))


class TestParameterValidation:
    def test_choice_suggestions(self):
        with pytest.raises(ParameterValidationError, match="Did you mean"):
            validate_choice_parameter("scheme", "TFIDF", ["tfidf", "prop"])

    def test_span_limits(self):
        validate_span_parameter(2)
        with pytest.raises(ParameterValidationError):
            validate_span_parameter(1)
        with pytest.raises(ParameterValidationError):
            validate_span_parameter(11)
        with pytest.raises(ParameterValidationError):
            validate_span_parameter(2.5)
        with pytest.warns(ValidationWarning):
            validate_span_parameter(6)

    @pytest.mark.parametrize(
        "dictionary",
        [
            {},
            {"doc_id": ["x*"]},
            {"economy": []},
            {"economy": ["job*", 3]},
            ["job*"],
        ],
    )
    def test_invalid_dictionaries(self, dictionary):
        with pytest.raises(ParameterValidationError):
            validate_dictionary(dictionary)

    def test_kwic_window(self, simple_tokens):
        with pytest.raises(ParameterValidationError, match="Window"):
            qt.kwic(simple_tokens, "jobs", window=0)


class TestDirectoryValidation:
    def test_missing_directory_suggests_siblings(self, tmp_path):
        (tmp_path / "speeches").mkdir()
        with pytest.raises(FileSystemError, match="speeches"):
            validate_directory_path(tmp_path / "speech")

    def test_file_is_not_a_directory(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("text", encoding="utf-8")
        with pytest.raises(FileSystemError, match="got a file"):
            validate_directory_path(path)

    def test_blank_path(self):
        with pytest.raises(FileSystemError):
            validate_directory_path("  ")


class TestPerformance:
    def test_wide_dtm_warns(self, simple_tokens, monkeypatch):
        monkeypatch.setattr(config.CONFIG, "WIDE_DTM_CELLS", 10)
        with pytest.warns(PerformanceWarning):
            qt.tokens_dtm(simple_tokens)

    def test_monitor_records_time(self):
        with qt.PerformanceMonitor("noop") as monitor:
            pass
        assert monitor.elapsed_time >= 0

    def test_progress_tracker_reports(self, capsys, monkeypatch):
        monkeypatch.setattr(config.CONFIG, "PROGRESS_THRESHOLD", 5)
        tracker = qt.ProgressTracker(10, "Tokenizing")
        for _ in range(10):
            tracker.update()
        tracker.finish()

        output = capsys.readouterr().out
        assert "Starting Tokenizing" in output
        assert "100.0%" in output
        assert "completed" in output

    def test_small_jobs_are_silent(self, capsys):
        tracker = qt.ProgressTracker(3, "Tokenizing")
        tracker.update(3)
        tracker.finish()
        assert capsys.readouterr().out == ""
