"""Core IR, localization, and processing modules.

WHY: The core package contains the stable heart of the converter —
the IR dataclasses, the error taxonomy, and the localization logic.
These are consumed by every parser and formatter and must remain
backward-compatible.

HOW: ir.py defines the data structures, errors.py the exceptions,
project.py the project membership oracle, localizer.py turns error
records into issues, sink.py collects them, and pipeline.py runs
reports through all of it.

RULES:
- IR dataclasses are the contract — change with care
- Localization logic is dialect-agnostic — no parser-specific logic here
- Nothing in core holds global state
"""
