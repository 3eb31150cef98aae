"""
Main CLI entry point for Sora Batch

This module provides the main() function that is called by the
sora-batch command installed via pip.
"""
from sora_batch.interfaces.cli import main


if __name__ == "__main__":
    main()
