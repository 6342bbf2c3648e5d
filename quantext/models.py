"""
Supervised and unsupervised models fitted to document-term matrices.

Both models are thin wrappers around scikit-learn estimators. The
wrappers take and return polars DataFrames so that document ids and
feature names travel with the numbers.

Classes:
    NaiveBayesClassifier: Multinomial Naive Bayes text classification
    TopicModel: Latent Dirichlet Allocation topic model

Functions:
    split_train_test: Random split of a document-term matrix
    align_labels: Labels from document variables in document order
    classification_table: Confusion matrix of actual vs. predicted labels
    classification_scores: Precision, recall and F1 per class
    classification_accuracy: Share of correctly classified documents

Example:
    Classifying documents by party::

        from quantext.models import NaiveBayesClassifier, split_train_test

        train, test = split_train_test(dtm, test_size=0.2, seed=1)
        model = NaiveBayesClassifier().fit(train, align_labels(train, docvars, 'party'))
        predicted = model.predict(test)

.. codeauthor:: quantext developers
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np
import polars as pl
from sklearn.decomposition import LatentDirichletAllocation
from sklearn.metrics import (
    accuracy_score,
    confusion_matrix,
    precision_recall_fscore_support,
)
from sklearn.model_selection import train_test_split
from sklearn.naive_bayes import MultinomialNB

from .analyzers import DTMAnalyzer
from .config import CONFIG
from .corpus_utils import dtm_to_coo
from .performance import PerformanceMonitor
from .validation import (
    DataFormatError,
    ModelValidationError,
    ParameterValidationError,
    validate_choice_parameter,
    validate_dtm,
)


def split_train_test(
    dtm: pl.DataFrame,
    test_size: float = CONFIG.DEFAULT_TEST_SIZE,
    seed: int = CONFIG.DEFAULT_SEED,
    stratify: Optional[Sequence] = None,
) -> Tuple[pl.DataFrame, pl.DataFrame]:
    """
    Split the documents of a document-term matrix into a training and a test set.

    :param dtm: A document-term matrix
    :param test_size: Proportion (0-1) or number of test documents
    :param seed: Random seed, so the split can be reproduced
    :param stratify: Optional labels, aligned with the rows of ``dtm``,
        whose proportions are preserved in both sets
    :return: A tuple of (training dtm, test dtm), each in original row order
    """
    validate_dtm(dtm, "in split_train_test")
    if dtm.height < 2:
        raise ParameterValidationError(
            "At least two documents are needed in split_train_test."
        )

    rows = np.arange(dtm.height)
    train_rows, test_rows = train_test_split(
        rows,
        test_size=test_size,
        random_state=seed,
        stratify=None if stratify is None else list(stratify),
    )
    return (
        dtm.select(pl.all().gather(np.sort(train_rows))),
        dtm.select(pl.all().gather(np.sort(test_rows))),
    )


def align_labels(dtm: pl.DataFrame, docvars: pl.DataFrame, field: str) -> List:
    """
    Look up a document variable for each row of a document-term matrix.

    :param dtm: A document-term matrix
    :param docvars: A DataFrame with 'doc_id' and document variables
    :param field: The document variable holding the labels
    :return: A list of labels in the row order of ``dtm``
    """
    if field not in docvars.columns:
        raise ParameterValidationError(
            f"Label field '{field}' not found in document variables. "
            f"Available: {', '.join(c for c in docvars.columns if c != 'doc_id')}"
        )
    return (
        dtm.select("doc_id")
        .with_row_index("__row")
        .join(docvars.select(["doc_id", field]), on="doc_id", how="left")
        .sort("__row")
        .get_column(field)
        .to_list()
    )


class NaiveBayesClassifier:
    """
    Multinomial Naive Bayes classifier for document-term matrices.

    With the default uniform prior every class starts out equally likely,
    so predictions depend on the word evidence alone. A 'docfreq' prior
    uses the share of training documents in each class instead.

    Example:
        Fit and predict::

            model = NaiveBayesClassifier(smooth=1.0)
            model.fit(train_dtm, labels)
            model.predict(test_dtm)
            model.feature_scores(10)
    """

    def __init__(self, smooth: float = CONFIG.NB_SMOOTHING, prior: str = "uniform"):
        validate_choice_parameter(
            "prior", prior, ["uniform", "docfreq"], "in NaiveBayesClassifier"
        )
        self.smooth = smooth
        self.prior = prior
        self.model = MultinomialNB(alpha=smooth, fit_prior=(prior == "docfreq"))
        self.features: List[str] = []
        self._dtm_analyzer = DTMAnalyzer()

    @property
    def classes(self) -> List:
        self._check_fitted()
        return self.model.classes_.tolist()

    def fit(self, dtm: pl.DataFrame, labels: Sequence) -> "NaiveBayesClassifier":
        """
        Fit the classifier.

        :param dtm: A training document-term matrix of counts
        :param labels: One label per row of ``dtm``
        :return: The fitted classifier
        """
        validate_dtm(dtm, "in NaiveBayesClassifier.fit")
        labels = list(labels)
        if len(labels) != dtm.height:
            raise ParameterValidationError(
                f"Got {len(labels)} labels for {dtm.height} documents "
                "in NaiveBayesClassifier.fit."
            )
        if any(label is None for label in labels):
            raise ParameterValidationError(
                "Training labels must not be missing in NaiveBayesClassifier.fit."
            )

        matrix, _, vocab = dtm_to_coo(dtm)
        with PerformanceMonitor("Naive Bayes training"):
            self.model.fit(matrix.tocsr(), labels)
        self.features = list(vocab)
        return self

    def predict(self, dtm: pl.DataFrame) -> pl.DataFrame:
        """
        Predict the class of each document.

        The matrix is first conformed to the training features, so
        words unseen in training are ignored.

        :param dtm: A document-term matrix
        :return: A polars DataFrame with 'doc_id' and 'predicted' columns
        """
        matrix, docs = self._prepare(dtm)
        return pl.DataFrame(
            {"doc_id": docs, "predicted": self.model.predict(matrix).tolist()}
        )

    def predict_proba(self, dtm: pl.DataFrame) -> pl.DataFrame:
        """Posterior class probabilities, one column per class."""
        matrix, docs = self._prepare(dtm)
        proba = self.model.predict_proba(matrix)
        return pl.DataFrame({"doc_id": docs}).with_columns(
            [
                pl.Series(str(cls), proba[:, i])
                for i, cls in enumerate(self.model.classes_)
            ]
        )

    def feature_scores(self, n: Optional[int] = None) -> pl.DataFrame:
        """
        Posterior probability of each class given a single feature.

        :param n: Return only the first ``n`` features
        :return: A polars DataFrame with 'feature' and one column per class
        """
        self._check_fitted()
        word_given_class = np.exp(self.model.feature_log_prob_)
        class_given_word = word_given_class / word_given_class.sum(axis=0)
        scores = pl.DataFrame({"feature": self.features}).with_columns(
            [
                pl.Series(str(cls), class_given_word[i])
                for i, cls in enumerate(self.model.classes_)
            ]
        )
        return scores if n is None else scores.head(n)

    def _prepare(self, dtm: pl.DataFrame):
        self._check_fitted()
        validate_dtm(dtm, "in NaiveBayesClassifier.predict")
        matched = self._dtm_analyzer.dtm_match(dtm, self.features)
        matrix, docs, _ = dtm_to_coo(matched)
        return matrix.tocsr(), docs

    def _check_fitted(self):
        if not self.features:
            raise ModelValidationError(
                "The classifier has not been fitted. Call fit(dtm, labels) first."
            )


def classification_table(actual: Sequence, predicted: Sequence) -> pl.DataFrame:
    """
    Cross-tabulate actual and predicted labels.

    :param actual: The true labels
    :param predicted: The predicted labels
    :return: A polars DataFrame with an 'actual' column and one
        column of counts per predicted class
    """
    actual, predicted = list(actual), list(predicted)
    classes = sorted(set(actual) | set(predicted), key=str)
    matrix = confusion_matrix(actual, predicted, labels=classes)
    return pl.DataFrame({"actual": [str(c) for c in classes]}).with_columns(
        [
            pl.Series(str(cls), matrix[:, i], dtype=pl.UInt32)
            for i, cls in enumerate(classes)
        ]
    )


def classification_scores(actual: Sequence, predicted: Sequence) -> pl.DataFrame:
    """Precision, recall, F1 and support for every class."""
    actual, predicted = list(actual), list(predicted)
    classes = sorted(set(actual) | set(predicted), key=str)
    precision, recall, f1, support = precision_recall_fscore_support(
        actual, predicted, labels=classes, zero_division=0
    )
    return pl.DataFrame(
        {
            "Class": [str(c) for c in classes],
            "Precision": precision,
            "Recall": recall,
            "F1": f1,
            "Support": support,
        }
    )


def classification_accuracy(actual: Sequence, predicted: Sequence) -> float:
    return float(accuracy_score(list(actual), list(predicted)))


class TopicModel:
    """
    Latent Dirichlet Allocation topic model.

    Example:
        Fit a model and list the top terms::

            model = TopicModel(n_topics=10, seed=1).fit(dtm)
            model.top_terms(10)
            model.document_topics()
    """

    def __init__(
        self,
        n_topics: int = CONFIG.DEFAULT_N_TOPICS,
        seed: int = CONFIG.DEFAULT_SEED,
        max_iter: int = CONFIG.LDA_MAX_ITER,
        learning_method: str = "batch",
    ):
        if not isinstance(n_topics, int) or n_topics < 1:
            raise ParameterValidationError(
                f"n_topics must be a positive integer, got {n_topics!r}."
            )
        validate_choice_parameter(
            "learning_method", learning_method, ["batch", "online"], "in TopicModel"
        )
        self.n_topics = n_topics
        self.model = LatentDirichletAllocation(
            n_components=n_topics,
            random_state=seed,
            max_iter=max_iter,
            learning_method=learning_method,
        )
        self.features: List[str] = []
        self.docs: List[str] = []
        self.doc_topic: Optional[np.ndarray] = None

    @property
    def topic_names(self) -> List[str]:
        return [f"Topic_{i + 1}" for i in range(self.n_topics)]

    def fit(self, dtm: pl.DataFrame) -> "TopicModel":
        """
        Fit the topic model to a document-term matrix of counts.

        :param dtm: A document-term matrix with non-negative values
        :return: The fitted model
        """
        validate_dtm(dtm, "in TopicModel.fit")
        if dtm.width == 1:
            raise DataFormatError("The dtm has no features in TopicModel.fit.")

        matrix, docs, vocab = dtm_to_coo(dtm)
        if matrix.nnz > 0 and matrix.data.min() < 0:
            raise DataFormatError(
                "Topic models need non-negative counts in TopicModel.fit. "
                "Use an unweighted or 'prop'/'tfidf' weighted dtm, not 'scale'."
            )

        with PerformanceMonitor("LDA topic model"):
            self.doc_topic = self.model.fit_transform(matrix.tocsr())
        self.features = list(vocab)
        self.docs = list(docs)
        return self

    def top_terms(self, n: int = CONFIG.TOP_TERMS) -> pl.DataFrame:
        """
        The highest-weighted terms of every topic.

        :param n: Number of terms per topic
        :return: A polars DataFrame with columns 'Topic_1' .. 'Topic_k',
            row ``i`` holding each topic's ``i``-th term
        """
        self._check_fitted()
        terms = {}
        for name, weights in zip(self.topic_names, self.model.components_):
            top_idx = weights.argsort()[::-1][:n]
            terms[name] = [self.features[i] for i in top_idx]
        return pl.DataFrame(terms)

    def document_topics(self) -> pl.DataFrame:
        """
        Topic proportions of every training document.

        :return: A polars DataFrame with 'doc_id', 'Topic' (the most
            likely topic, 1-based) and one proportion column per topic
        """
        self._check_fitted()
        return pl.DataFrame(
            {
                "doc_id": self.docs,
                "Topic": (self.doc_topic.argmax(axis=1) + 1).tolist(),
            },
            schema={"doc_id": pl.String, "Topic": pl.UInt32},
        ).with_columns(
            [
                pl.Series(name, self.doc_topic[:, i])
                for i, name in enumerate(self.topic_names)
            ]
        )

    def _check_fitted(self):
        if self.doc_topic is None:
            raise ModelValidationError(
                "The topic model has not been fitted. Call fit(dtm) first."
            )
