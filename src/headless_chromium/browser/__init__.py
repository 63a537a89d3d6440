"""Chromium process helpers.

Locating the binary (``resolver``), completing the command line
(``flags``), the throw-away user-data directory (``workspace``) and
running the whole runner out of process (``launcher``).
"""
