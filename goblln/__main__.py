"""
Run goblln as a module.

Usage:
    python -m goblln "a function that adds two numbers" --code --language go
"""

from goblln.cli import main

if __name__ == "__main__":
    main()
