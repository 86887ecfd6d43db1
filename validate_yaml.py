#!/usr/bin/env python3
"""Validate maintenance console data files against the schema."""
import sys
from pathlib import Path

import yaml
from jsonschema import validate, ValidationError

from biomed.config import Config

# child collection -> [(foreign key, parent collection)]
REFERENCES = {
    "maintenance_records": [("customer_id", "customers"), ("equipment_id", "equipment")],
    "maintenance_visits": [("maintenance_record_id", "maintenance_records")],
}


def load_schema() -> dict:
    """Load the JSON schema from schema.yaml."""
    schema_path = Path(__file__).parent / "schema.yaml"
    with open(schema_path) as f:
        return yaml.safe_load(f)


def check_references(data: dict) -> list[str]:
    """Report rows whose foreign keys point at missing parents, and duplicate ids."""
    errors = []
    ids = {}
    for collection, rows in data.items():
        seen = set()
        for row in rows or []:
            if row["id"] in seen:
                errors.append(f"Duplicate id in {collection}: {row['id']}")
            seen.add(row["id"])
        ids[collection] = seen

    for collection, links in REFERENCES.items():
        for row in data.get(collection) or []:
            for foreign_key, parent in links:
                if row.get(foreign_key) not in ids.get(parent, set()):
                    errors.append(
                        f"{collection} {row['id']}: {foreign_key} "
                        f"'{row.get(foreign_key)}' not found in {parent}"
                    )
    return errors


def validate_data_file(filepath: Path, schema: dict) -> list[str]:
    """Validate a single data file. Returns list of errors."""
    errors = []
    try:
        with open(filepath) as f:
            data = yaml.safe_load(f) or {}
        validate(instance=data, schema=schema)
        errors.extend(check_references(data))
    except yaml.YAMLError as e:
        errors.append(f"YAML parse error: {e}")
    except ValidationError as e:
        errors.append(f"Schema validation error: {e.message}")
        if e.path:
            errors.append(f"  at path: {'.'.join(str(p) for p in e.path)}")
    except Exception as e:
        errors.append(f"Error: {e}")
    return errors


def main(argv=None):
    """Validate the given data files, or the configured AMC_DATA_FILE."""
    schema = load_schema()
    paths = [Path(p) for p in (argv if argv is not None else sys.argv[1:])]
    if not paths:
        paths = [Config.from_env().data_file]

    all_valid = True
    for filepath in paths:
        if not filepath.exists():
            print(f"FAIL: {filepath}")
            print("  File not found")
            all_valid = False
            continue
        errors = validate_data_file(filepath, schema)
        if errors:
            print(f"FAIL: {filepath.name}")
            for error in errors:
                print(f"  {error}")
            all_valid = False
        else:
            print(f"OK: {filepath.name}")

    return 0 if all_valid else 1


if __name__ == "__main__":
    sys.exit(main())
