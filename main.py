"""Entrypoint to run lapse reports from the command line."""
from lapse.cli import main as cli_main


def main() -> None:
    cli_main()


if __name__ == "__main__":
    main()
