import sys

from tateti.cli import main

# -----------------------------------------------------------------------------
# ENTRY POINT
# -----------------------------------------------------------------------------

if __name__ == '__main__':
    # no subcommand opens the desktop board
    sys.exit(main(sys.argv[1:] or ["gui"]))
