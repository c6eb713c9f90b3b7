#!/usr/bin/env python3
"""
Fill out_listing, out_stdout and ticks for a golden YAML record.
Usage: python generate_golden_fields.py path/to/golden.yaml
"""

import io
import os
import sys

import yaml

from config import load_config
from isa import format_listing
from processor import ControlUnit, Datapath, InputExhaustedError, new_tape
from translator import translate


def fill_expectations(doc):
    """Run the record's program and store what it produced under `expect`.

    Programs that fail translation are left alone (their expectation is an
    error, written by hand). Input exhaustion keeps the partial output.
    """
    src = str(doc["in_source"]).encode("latin-1")
    stdin_bytes = str(doc.get("in_stdin", "")).encode("latin-1")
    cfg = load_config(doc.get("in_config"))

    instructions = translate(src)
    out = io.BytesIO()
    dp = Datapath(new_tape(cfg["tape_size"]), stdin=io.BytesIO(stdin_bytes), stdout=out)
    target = doc.setdefault("expect", {})
    try:
        ControlUnit(instructions, dp).run()
    except InputExhaustedError as e:
        target["error"] = type(e).__name__
        target["error_message"] = str(e)

    target["out_listing"] = format_listing(instructions)
    target["out_stdout"] = out.getvalue().decode("latin-1")
    target["ticks"] = dp.tick
    return doc


def main(path):
    if not os.path.exists(path):
        print("File not found:", path)
        sys.exit(2)

    with open(path, "r", encoding="utf-8") as f:
        doc = yaml.safe_load(f)

    if not isinstance(doc, dict) or "in_source" not in doc:
        print("No 'in_source' found in YAML, nothing to run")
        sys.exit(2)

    fill_expectations(doc)

    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(doc, f, default_flow_style=False, sort_keys=False, allow_unicode=True)

    print(f"Updated {path} with out_listing, out_stdout and ticks.")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: generate_golden_fields.py path/to/golden.yaml")
        sys.exit(1)
    main(sys.argv[1])
