"""Allow ``python -m docqa.cli`` execution."""

from docqa.cli.manage import main

main()
