"""JSON document backend for the categorized store."""

import json
import logging
import os
import tempfile

import jsonschema

from canary.errors import StoreLoadError
from canary.models import DOCUMENT_KEYS, TOTAL_KEY, Category, StoreState, record_from_dict

logger = logging.getLogger(__name__)

SCHEMA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "schemas", "store_schema.json")

# schema definition each category's entries are checked against
RECORD_DEFINITIONS = {
    Category.UNHANDLED: "unhandled",
    Category.UNDESERIALIZABLE: "undeserializable",
    Category.UNSERIALIZABLE: "unserializable",
    Category.INEQUAL: "notEqual",
}


def _load_schema(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _error_location(error: jsonschema.ValidationError) -> str:
    return "/".join(str(p) for p in error.path)


def _record_validators(schema: dict) -> dict:
    return {
        category: jsonschema.Draft202012Validator({
            "$schema": schema.get("$schema"),
            "$defs": schema["$defs"],
            "$ref": f"#/$defs/{definition}",
        })
        for category, definition in RECORD_DEFINITIONS.items()
    }


class JsonDocumentBackend:
    """Whole-document load/save of the store state in a single JSON file.

    Saves go to a temp file in the same directory and are moved into place
    with ``os.replace``, so the document on disk is never half-written.
    """

    def __init__(self, path: str, schema_path: str = SCHEMA_PATH):
        self._path = path
        schema = _load_schema(schema_path)
        self._validator = jsonschema.Draft202012Validator(schema)
        self._record_validators = _record_validators(schema)
        self._skipped = 0

    @property
    def path(self) -> str:
        return self._path

    @property
    def skipped(self) -> int:
        """Malformed entries left out by the last ``load``."""
        return self._skipped

    def load(self) -> StoreState:
        """Read the document, or return an empty state if there is none yet.

        Entries that fail their record schema are logged and left out; the
        rest of the document still loads.

        Raises:
            StoreLoadError: If the file is not JSON or its top level is malformed.
        """
        self._skipped = 0
        if not os.path.exists(self._path):
            logger.info("No store document at %s, starting empty", self._path)
            return StoreState()

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            raise StoreLoadError(f"Store document {self._path} is not valid JSON: {e}") from e

        errors = sorted(self._validator.iter_errors(document), key=lambda error: [str(p) for p in error.path])
        if errors:
            messages = [f"{_error_location(error) or '<root>'}: {error.message}" for error in errors]
            raise StoreLoadError(
                f"Store document {self._path} failed validation: " + "; ".join(messages[:5])
            )

        state = StoreState(total_messages=int(document.get(TOTAL_KEY) or 0))
        for category, key in DOCUMENT_KEYS.items():
            for index, item in enumerate(document.get(key) or []):
                record = self._load_record(category, key, index, item)
                if record is not None:
                    state.records[category].append(record)

        logger.info(
            "Loaded store document %s (%d seen, %d records, %d skipped)",
            self._path, state.total_messages, len(state.all_records()), self._skipped,
        )
        return state

    def _load_record(self, category: Category, key: str, index: int, item):
        errors = list(self._record_validators[category].iter_errors(item))
        if not errors:
            try:
                return record_from_dict(category, item)
            except (KeyError, TypeError, ValueError) as e:
                errors = [e]

        self._skipped += 1
        reasons = "; ".join(getattr(error, "message", str(error)) for error in errors[:3])
        logger.warning("Skipping malformed entry %s/%d in %s: %s", key, index, self._path, reasons)
        return None

    def save(self, state: StoreState):
        directory = os.path.dirname(os.path.abspath(self._path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state.to_dict(), f)
            os.replace(tmp, self._path)
        except Exception:
            os.unlink(tmp)
            raise
