"""Package entry point for ``python -m memdiag_converter``.

WHY: Users run the converter as ``python -m memdiag_converter report.xml``.
Python's ``-m`` flag looks for ``__main__.py`` inside the package and
executes it.

HOW: Delegates to the CLI's main() function.
"""

from memdiag_converter.cli import main

if __name__ == "__main__":
    main()
