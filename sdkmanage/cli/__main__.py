"""
Entry point for running the sdk-manage CLI as a module.

Usage: python -m sdkmanage.cli [global-options] COMMAND ...
"""

from .parser import main

if __name__ == "__main__":
    main()
