"""Export JSON schemas for the wire models shared with the client."""

import json
import sys
from pathlib import Path

from pydantic import BaseModel

from backend.app.models import Document, Message, StreamEvent, Suggestion, UIMessage, Vote

WIRE_MODELS: tuple[type[BaseModel], ...] = (Document, Suggestion, Message, UIMessage, Vote, StreamEvent)


def main(schemas_dir: Path = Path("docs/schemas")) -> list[Path]:
    """Export schemas to docs/schemas/ (camelCase, as sent on the wire)."""
    schemas_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for model in WIRE_MODELS:
        path = schemas_dir / f"{model.__name__}.schema.json"
        with open(path, "w") as f:
            json.dump(model.model_json_schema(by_alias=True), f, indent=2)
        print(f"Exported {model.__name__} schema to {path}")
        written.append(path)
    return written


if __name__ == "__main__":
    main(Path(sys.argv[1]) if len(sys.argv) > 1 else Path("docs/schemas"))
