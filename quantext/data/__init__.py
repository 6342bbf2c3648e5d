from importlib_resources import files as _files

sources = {
    "demo_corpus": _files("quantext") / "data/demo_corpus.csv",
}


def __dir__():
    return list(sources)


def __getattr__(k):
    import io

    import polars as pl

    if k not in sources:
        raise AttributeError(f"module 'quantext.data' has no dataset '{k}'")

    f_path = sources[k]

    return pl.read_csv(io.BytesIO(f_path.read_bytes()), schema_overrides={
        "doc_id": pl.String, "text": pl.String
    })
