"""Input/output of proposal and vote exports.

This subpackage is structured into modules by file format. Currently, the
JSON exports produced by the governance indexers (Snapshot-style field names)
are supported by :mod:`govtally.io.snapshot`.
"""
