"""
Main module entry point.

Running ``python -m src.main`` starts the forecast refresh worker.
"""

from .worker import main

if __name__ == "__main__":
    main()
