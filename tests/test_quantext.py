# This code is a test suite for the quantext library,
# which walks through a quantitative text analysis with polars and spaCy.

import unittest
import polars as pl
import spacy
import quantext as qt
from quantext.validation import ModelValidationError


class TestCorpusAnalysis(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        # A blank pipeline is enough for tokenizing
        cls.nlp = spacy.blank("en")
        try:
            cls.parser = spacy.load("en_core_web_sm")
        except OSError:
            cls.parser = None

        # Create a simple corpus DataFrame
        cls.corpus = pl.DataFrame(
            {
                "doc_id": ["doc1", "doc2"],
                "text": ["This is a test.", "Another test document."],
                "group": ["a", "b"],
            }
        )
        cls.tokens = qt.tokens_tolower(qt.tokenize(cls.corpus, cls.nlp))

    def test_dependency_parse_with_invalid_model(self):
        with self.assertRaises(ModelValidationError):
            qt.dependency_parse(self.corpus, spacy.blank("en"))

    def test_dependency_parse(self):
        if self.parser is None:
            self.skipTest("spaCy model 'en_core_web_sm' not available")
        df = qt.dependency_parse(self.corpus, self.parser)
        self.assertIsInstance(df, pl.DataFrame)
        self.assertIn("dep_rel", df.columns)
        self.assertIn("head_token_id", df.columns)

    def test_tokenize_skips_none_text(self):
        corpus_with_none = pl.DataFrame(
            {"doc_id": ["doc1", "doc2"], "text": [None, "Another test document."]}
        )
        df = qt.tokenize(corpus_with_none, self.nlp)
        # Only doc2 should be present in the output
        self.assertTrue((df["doc_id"] == "doc2").all())

    def test_tokenize(self):
        self.assertIsInstance(self.tokens, pl.DataFrame)
        self.assertEqual(self.tokens.columns, ["doc_id", "token_id", "token"])
        self.assertEqual(self.tokens.height, 7)

    def test_frequency_table(self):
        freq_df = qt.frequency_table(self.tokens)
        self.assertIsInstance(freq_df, pl.DataFrame)
        self.assertIn("Token", freq_df.columns)
        self.assertIn("AF", freq_df.columns)
        self.assertIn("RF", freq_df.columns)
        self.assertEqual(freq_df["Token"][0], "test")

    def test_tokens_dtm(self):
        dtm_df = qt.tokens_dtm(self.tokens)
        self.assertIsInstance(dtm_df, pl.DataFrame)
        self.assertEqual(dtm_df.columns[0], "doc_id")
        self.assertEqual(dtm_df["test"].to_list(), [1, 1])

    def test_dtm_weight(self):
        dtm_df = qt.tokens_dtm(self.tokens)
        weighted_df = qt.dtm_weight(dtm_df, scheme="tfidf")
        self.assertIsInstance(weighted_df, pl.DataFrame)
        # 'test' occurs in every document
        self.assertEqual(weighted_df["test"].to_list(), [0.0, 0.0])

    def test_ngrams(self):
        ngram_df = qt.ngrams(self.tokens, span=2, min_frequency=1)
        self.assertIsInstance(ngram_df, pl.DataFrame)
        self.assertIn("a test", ngram_df["Token"].to_list())

    def test_kwic(self):
        kwic_df = qt.kwic(self.tokens, "test", search_type="fixed")
        self.assertIsInstance(kwic_df, pl.DataFrame)
        self.assertEqual(kwic_df.height, 2)
        self.assertEqual(kwic_df["pre"].to_list(), ["this is a", "another"])

    def test_keyness(self):
        dtm_df = qt.tokens_dtm(self.tokens)
        keyness_df = qt.dtm_keyness(dtm_df, target="doc1")
        self.assertIsInstance(keyness_df, pl.DataFrame)
        self.assertEqual(keyness_df.height, dtm_df.width - 1)

    def test_dictionary_lookup(self):
        dtm_df = qt.tokens_dtm(self.tokens)
        lookup_df = qt.dictionary_lookup(dtm_df, {"testing": "test*"})
        self.assertEqual(lookup_df["testing"].to_list(), [1, 1])

    def test_dtm_group(self):
        dtm_df = qt.tokens_dtm(self.tokens)
        grouped = qt.dtm_group(dtm_df, qt.corpus_docvars(self.corpus), by="group")
        self.assertEqual(grouped["doc_id"].to_list(), ["a", "b"])


if __name__ == "__main__":
    unittest.main()
