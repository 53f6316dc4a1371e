def test_imports():
    import importlib
    import os
    import sys

    # Ensure `src/` is on sys.path so `webextract` imports during tests (src layout)
    project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    src_path = os.path.join(project_root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)

    # third-party stack
    import bs4
    import pandas as pd
    import soupsieve

    assert getattr(pd, "__version__", None)
    assert bs4.__version__ and soupsieve.__version__

    # importing leaf modules first must not trip over the package's own imports
    for name in [
        "webextract.core.models",
        "webextract.core.scraping.selector",
        "webextract.core.pipeline",
        "webextract.core.scraping",
        "webextract.core.scraping.prefect_tasks",
        "webextract.flows.extraction_flow",
    ]:
        assert importlib.import_module(name) is not None
