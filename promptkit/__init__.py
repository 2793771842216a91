"""Prompt templating, shell integration, document loading, web crawling and terminal spinners."""

__version__ = "0.1.0"