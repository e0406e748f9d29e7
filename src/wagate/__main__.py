"""Allow `python -m wagate`."""

from wagate.cli import app

if __name__ == "__main__":
    app()
