"""Prompting package.

This package contains the tone policy table and deterministic prompt-construction
helpers used by the generation adapters. It does not perform provider selection,
network I/O, or response parsing.
"""
