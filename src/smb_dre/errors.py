# SMB DRE - Income statement & forecasting engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Error taxonomy for SMB DRE.

Two failure families are surfaced to callers:

- InputError:
    malformed or missing period bounds, inverted ranges, non-numeric series
    elements or malformed transaction records. Never retried.

- SourceUnavailable:
    the upstream transaction source could not be reached or failed while
    fetching. A failed fetch is never turned into an empty (all-zero)
    report.

They subclass ValueError and RuntimeError so that generic handlers keep
working.
"""


class InputError(ValueError):
    """Raised when caller-supplied input is missing or malformed."""


class SourceUnavailable(RuntimeError):
    """Raised when the transaction source fails to deliver a result set."""
