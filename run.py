"""Server entry point."""

from sli_demo.cli import main

if __name__ == "__main__":
    main()
