import sys

from node_launcher.runner import run


def main() -> None:
    """
    Entry point for the ``node-launcher`` console script.

    Runs the launcher and exits with the node's exit code, or with the
    launcher's own failure code if the node never ran.
    """
    sys.exit(run())


if __name__ == "__main__":
    main()
