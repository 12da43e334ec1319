"""Command modules for the qg CLI."""
