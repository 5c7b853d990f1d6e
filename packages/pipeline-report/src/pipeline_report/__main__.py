import sys

from pipeline_report.cli import main

if __name__ == "__main__":
    sys.exit(main())
