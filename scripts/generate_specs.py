#!/usr/bin/env python3
"""
Generate JSON Schemas, YAML variants, and OpenAPI from Pydantic models.

Outputs under mediaintake/specs/:
 - schemas/*.json (and *.yaml)
 - openapi.yaml and openapi.json
"""
from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from mediaintake.specs.schema_export import SPECS_DIR, generate_all  # noqa: E402


def main() -> None:
    generate_all(SPECS_DIR)
    print(f"Specs generated under {SPECS_DIR}")


if __name__ == "__main__":
    main()
