"""
LaserScore CLI Entry Point

Allows running the package as a module: python -m laserscore
"""

from laserscore.cli import main

if __name__ == "__main__":
    main()
