"""Import plan snapshots from a browser localStorage dump into the SQL store.

The dump is a JSON object mapping localStorage keys to their string values,
e.g. the output of ``JSON.stringify(localStorage)`` in the browser console.
"""

import json
import logging
import os
import sys

import db
import plan_store
from half_marathon_plan import make_plan_from_inputs

logger = logging.getLogger(__name__)

DUMP_PATH = os.path.join(os.path.dirname(__file__), "..", "data", "local_storage.json")


def load_dump(path: str) -> dict[str, str]:
    if not os.path.exists(path):
        raise FileNotFoundError(f"localStorage dump not found at {path}")
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError("localStorage dump must be a JSON object")
    return {str(k): v if isinstance(v, str) else json.dumps(v) for k, v in data.items()}


def import_snapshots(dump: dict[str, str], store: db.KeyValueStore) -> list[str]:
    """Copy every indexed snapshot that loads cleanly; returns the imported keys."""

    source = db.MemoryKeyValueStore(dump)
    imported: list[str] = []
    for key in plan_store.list_plan_keys(source):
        saved = plan_store.load_plan(source, key)
        if saved is None:
            logger.warning("Skipping unreadable snapshot %s", key)
            continue
        weeks = saved.weeks or make_plan_from_inputs(saved.inputs).weeks
        plan_store.save_plan(store, saved.inputs, weeks, key=key)
        imported.append(key)
    return imported


def main():
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
    path = sys.argv[1] if len(sys.argv) > 1 else DUMP_PATH
    store = db.open_store()
    imported = import_snapshots(load_dump(path), store)
    logger.info("Imported %d plan snapshot(s)", len(imported))
    print("Import completed successfully.")


if __name__ == "__main__":
    main()
