"""
A step-by-step walkthrough of quantitative text analysis.

Each step is a small function that runs one kind of analysis, prints
its result and returns it, so the walkthrough can be read top to
bottom, run as a whole, or run one step at a time from a notebook.

Steps:
    load: Read a text table from a URL, a local file or the bundled demo
    clean: Strip HTML tags and lowercase the texts
    tokenize: Tokenize, remove stopwords and stem
    dtm: Build a document-term matrix
    weight: Trim rare features and weight by tf-idf
    dictionary: Count dictionary categories
    classify: Naive Bayes classification on a train/test split
    topics: LDA topic model and its top terms
    keyness: Keyness of one group against the others
    parse: Dependency parse of a sentence
    ngrams: Bigrams
    kwic: Keywords in context

Example:
    From the command line::

        quantext-walkthrough --offline
        quantext-walkthrough --source speeches.csv --text-field text \\
            --group-field speaker --target Smith --steps load clean tokenize dtm

    From Python::

        from quantext.walkthrough import run_walkthrough

        results = run_walkthrough(offline=True, steps=["load", "tokenize", "kwic"])

.. codeauthor:: quantext developers
"""

import argparse
import warnings
from typing import Dict, List, Optional, Sequence

import polars as pl
import spacy

from . import data
from .config import CONFIG
from .corpus_analysis import (
    clean_text,
    dependency_parse,
    dictionary_lookup,
    dtm_group,
    dtm_keyness,
    dtm_subset,
    dtm_trim,
    kwic,
    ngrams,
    textmodel_nb,
    tokenize,
    tokens_dtm,
    tokens_ngrams,
    tokens_remove,
    tokens_wordstem,
    topfeatures,
    topic_model,
)
from .corpus_utils import corpus_docvars, dtm_weight, readtext_table
from .models import (
    align_labels,
    classification_accuracy,
    classification_scores,
    classification_table,
    split_train_test,
)
from .processors import get_stopwords
from .validation import (
    ValidationWarning,
    validate_choice_parameter,
    validate_corpus_dataframe,
)

STEPS = [
    "load",
    "clean",
    "tokenize",
    "dtm",
    "weight",
    "dictionary",
    "classify",
    "topics",
    "keyness",
    "parse",
    "ngrams",
    "kwic",
]

DEMO_DICTIONARY = {
    "terrorism": ["terror*"],
    "economy": ["job*", "business*", "econom*"],
}


def _show(title: str, result):
    print(f"\n=== {title} ===")
    print(result)


def load_step(
    source: Optional[str] = None,
    text_field: str = CONFIG.DEMO_TEXT_FIELD,
    offline: bool = False,
) -> pl.DataFrame:
    """
    Load the corpus.

    :param source: A URL or path to a delimited file. \
        Defaults to the remote demo file.
    :param text_field: The column holding the texts.
    :param offline: Use the bundled demo corpus instead of ``source``.
    :return: A corpus DataFrame.
    """
    if offline:
        corp = data.demo_corpus
        validate_corpus_dataframe(corp, "in load_step")
    else:
        corp = readtext_table(source or CONFIG.DEMO_URL, text_field=text_field)
    _show(f"Corpus ({corp.height} documents)", corp)
    return corp


def clean_step(corp: pl.DataFrame) -> pl.DataFrame:
    """Remove HTML tags and lowercase the texts."""
    cleaned = clean_text(corp, strip_html=True, lowercase=True)
    _show("Cleaned texts", cleaned.select(["doc_id", "text"]))
    return cleaned


def tokenize_step(corp: pl.DataFrame) -> Dict[str, pl.DataFrame]:
    """
    Tokenize, then remove stopwords, then stem.

    All three stages are returned because later steps need different
    ones: n-grams and concordances read better on full tokens, while
    the document-term matrix is built from stems.
    """
    tokens = tokenize(corp)
    content = tokens_remove(tokens, get_stopwords(CONFIG.DEFAULT_LANGUAGE))
    stems = tokens_wordstem(content, CONFIG.DEFAULT_STEM_LANGUAGE)

    _show("Tokens", tokens)
    _show("Without stopwords", content)
    _show("Stems", stems)
    return {"tokens": tokens, "content": content, "stems": stems}


def dtm_step(stems: pl.DataFrame) -> pl.DataFrame:
    """Build a document-term matrix and list its most frequent features."""
    dtm = tokens_dtm(stems)
    _show(f"Document-term matrix ({dtm.height} x {dtm.width - 1})", dtm)
    _show("Top features", topfeatures(dtm, n=CONFIG.TOP_TERMS))
    return dtm


def weight_step(dtm: pl.DataFrame, min_termfreq: int = 2) -> Dict[str, pl.DataFrame]:
    """Drop rare features, then weight the remaining counts by tf-idf."""
    trimmed = dtm_trim(dtm, min_termfreq=min_termfreq)
    tfidf = dtm_weight(trimmed, scheme="tfidf")
    _show(f"Trimmed (min_termfreq={min_termfreq})", trimmed)
    _show("tf-idf", tfidf)
    return {"trimmed": trimmed, "tfidf": tfidf}


def dictionary_step(
    content: pl.DataFrame, dictionary: Optional[Dict[str, List[str]]] = None
) -> pl.DataFrame:
    """
    Count dictionary categories.

    Patterns are matched against unstemmed words, since a glob such as
    'business*' would miss the stem 'busi'.
    """
    lookup = dictionary_lookup(tokens_dtm(content), dictionary or DEMO_DICTIONARY)
    _show("Dictionary lookup", lookup)
    return lookup


def classify_step(
    dtm: pl.DataFrame,
    docvars: pl.DataFrame,
    label_field: str,
    test_size: float = CONFIG.DEFAULT_TEST_SIZE,
    seed: int = CONFIG.DEFAULT_SEED,
) -> Dict:
    """Train Naive Bayes on part of the documents and test it on the rest."""
    train, test = split_train_test(dtm, test_size=test_size, seed=seed)
    model = textmodel_nb(train, align_labels(train, docvars, label_field))

    actual = align_labels(test, docvars, label_field)
    predicted = model.predict(test).get_column("predicted").to_list()
    table = classification_table(actual, predicted)
    scores = classification_scores(actual, predicted)
    accuracy = classification_accuracy(actual, predicted)

    _show("Naive Bayes feature scores", model.feature_scores(CONFIG.TOP_TERMS))
    _show("Actual vs. predicted", table)
    _show(f"Scores (accuracy {accuracy:.3f})", scores)
    return {
        "model": model,
        "table": table,
        "scores": scores,
        "accuracy": accuracy,
    }


def topics_step(
    dtm: pl.DataFrame,
    n_topics: int = CONFIG.DEFAULT_N_TOPICS,
    seed: int = CONFIG.DEFAULT_SEED,
) -> Dict:
    """Fit an LDA topic model and show the top terms of each topic."""
    model = topic_model(dtm, n_topics=n_topics, seed=seed)
    terms = model.top_terms(CONFIG.TOP_TERMS)
    _show(f"Top terms of {n_topics} topics", terms)
    return {"model": model, "terms": terms}


def keyness_step(
    dtm: pl.DataFrame,
    docvars: pl.DataFrame,
    group_field: str,
    target: str,
    reference: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    """
    Compare one group of documents with the others.

    If ``reference`` is given, the matrix is first subset to the target
    and reference groups.
    """
    if reference:
        dtm = dtm_subset(
            dtm, docvars, pl.col(group_field).is_in([target, *reference])
        )
    grouped = dtm_group(dtm, docvars, by=group_field)
    keyness = dtm_keyness(grouped, target=target)
    _show(f"Keyness for {target}", keyness)
    return keyness


def parse_step(
    sentence: str = CONFIG.DEMO_SENTENCE,
    parser_model: str = CONFIG.DEFAULT_PARSER_MODEL,
) -> pl.DataFrame:
    """Parse a sentence with a pretrained spaCy pipeline."""
    nlp = spacy.load(parser_model)
    parsed = dependency_parse(sentence, nlp)
    _show("Dependency parse", parsed)
    return parsed


def ngrams_step(tokens: pl.DataFrame) -> Dict[str, pl.DataFrame]:
    """Form bigrams and count the recurring ones."""
    bigrams = tokens_ngrams(tokens, n=2)
    counts = ngrams(tokens, span=2, min_frequency=2)
    _show("Bigrams", bigrams)
    _show("Recurring bigrams", counts)
    return {"bigrams": bigrams, "counts": counts}


def kwic_step(tokens: pl.DataFrame, pattern: str = "terror*") -> pl.DataFrame:
    """Show every match of a pattern in its context."""
    concordance = kwic(tokens, pattern)
    _show(f"Keywords in context: {pattern}", concordance)
    return concordance


def run_walkthrough(
    source: Optional[str] = None,
    offline: bool = False,
    text_field: Optional[str] = None,
    group_field: Optional[str] = None,
    target: Optional[str] = None,
    reference: Optional[Sequence[str]] = None,
    label_field: Optional[str] = None,
    steps: Optional[Sequence[str]] = None,
    parser_model: str = CONFIG.DEFAULT_PARSER_MODEL,
    n_topics: int = CONFIG.DEFAULT_N_TOPICS,
    min_termfreq: int = 2,
) -> Dict:
    """
    Run the selected walkthrough steps in order.

    Steps that need earlier results (for example 'keyness' needs the
    document-term matrix) run those earlier steps as well; only the
    selected steps are returned.

    Args:
        source: A URL or path to a delimited file; defaults to the
            remote demo file.
        offline: Use the bundled demo corpus.
        text_field: The text column of ``source``.
        group_field: The document variable that groups documents for keyness.
        target: The group compared with all others in the keyness step.
        reference: Optional groups to compare the target against.
        label_field: The document variable predicted by the classifier.
            When the corpus lacks it, the classify step is skipped with
            a warning.
        steps: The steps to run; all of them by default.
        parser_model: The spaCy pipeline used for dependency parsing.
        n_topics: Number of LDA topics.
        min_termfreq: Minimum feature count kept by the weighting step.

    Returns:
        A dict mapping each selected step name to its result.
    """
    steps = list(steps) if steps else list(STEPS)
    for step in steps:
        validate_choice_parameter("step", step, STEPS, "in run_walkthrough")

    if offline:
        group_field = group_field or CONFIG.OFFLINE_GROUP_FIELD
        target = target or CONFIG.OFFLINE_KEYNESS_TARGET
        label_field = label_field or CONFIG.OFFLINE_LABEL_FIELD
    else:
        group_field = group_field or CONFIG.DEMO_GROUP_FIELD
        target = target or CONFIG.DEMO_KEYNESS_TARGET
        label_field = label_field or CONFIG.DEMO_LABEL_FIELD
    text_field = text_field or CONFIG.DEMO_TEXT_FIELD

    results = {}
    wanted = set(steps)
    needs_corpus = wanted - {"parse"}

    if "parse" in wanted and not needs_corpus:
        return {"parse": parse_step(parser_model=parser_model)}

    corp = load_step(source, text_field, offline)
    results["load"] = corp
    docvars = corpus_docvars(corp)

    corp = clean_step(corp)
    results["clean"] = corp

    tokenized = tokenize_step(corp)
    results["tokenize"] = tokenized

    dtm = dtm_step(tokenized["stems"])
    results["dtm"] = dtm

    if wanted & {"weight", "classify", "topics"}:
        results["weight"] = weight_step(dtm, min_termfreq)

    if "dictionary" in wanted:
        results["dictionary"] = dictionary_step(tokenized["content"])

    if "classify" in wanted:
        if label_field in docvars.columns:
            results["classify"] = classify_step(
                results["weight"]["trimmed"], docvars, label_field
            )
        else:
            warnings.warn(
                f"Skipping the classify step: the corpus has no '{label_field}' "
                "column. Pass label_field (--label-field) to name one.",
                ValidationWarning,
            )

    if "topics" in wanted:
        results["topics"] = topics_step(results["weight"]["trimmed"], n_topics)

    if "keyness" in wanted:
        results["keyness"] = keyness_step(dtm, docvars, group_field, target, reference)

    if "parse" in wanted:
        results["parse"] = parse_step(parser_model=parser_model)

    if "ngrams" in wanted:
        results["ngrams"] = ngrams_step(tokenized["tokens"])

    if "kwic" in wanted:
        results["kwic"] = kwic_step(tokenized["tokens"])

    return {step: results[step] for step in steps if step in results}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quantext-walkthrough",
        description="Run the quantitative text analysis walkthrough.",
    )
    parser.add_argument(
        "--source",
        default=None,
        help=f"URL or path of a delimited text file (default: {CONFIG.DEMO_URL})",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="use the bundled demo corpus instead of downloading one",
    )
    parser.add_argument("--text-field", default=None, help="column holding the texts")
    parser.add_argument(
        "--group-field", default=None, help="document variable used for keyness"
    )
    parser.add_argument("--target", default=None, help="keyness target group")
    parser.add_argument(
        "--reference", nargs="*", default=None, help="keyness reference groups"
    )
    parser.add_argument(
        "--label-field", default=None, help="document variable to classify"
    )
    parser.add_argument(
        "--steps", nargs="+", choices=STEPS, default=None, help="steps to run"
    )
    parser.add_argument(
        "--parser-model",
        default=CONFIG.DEFAULT_PARSER_MODEL,
        help="spaCy pipeline for dependency parsing",
    )
    parser.add_argument(
        "--topics", type=int, default=CONFIG.DEFAULT_N_TOPICS, help="number of topics"
    )
    parser.add_argument(
        "--min-termfreq", type=int, default=2, help="minimum feature count to keep"
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    run_walkthrough(
        source=args.source,
        offline=args.offline,
        text_field=args.text_field,
        group_field=args.group_field,
        target=args.target,
        reference=args.reference,
        label_field=args.label_field,
        steps=args.steps,
        parser_model=args.parser_model,
        n_topics=args.topics,
        min_termfreq=args.min_termfreq,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
