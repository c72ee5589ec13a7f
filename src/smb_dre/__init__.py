# SMB DRE - Income statement & forecasting engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
SMB DRE
-------

A Python compute engine for the financial reporting of Small and
Medium-sized Businesses. It turns a flat list of income/expense
transactions into a DRE (Demonstração do Resultado do Exercício, the
Brazilian income statement) and projects future monthly values from
historical series.

Main capabilities:
- DRE waterfall derivation from classified transactions, with itemized
  detail lists (engine),
- period presets and previous-period comparison windows (periods),
- period-over-period comparison and vertical analysis (comparison),
- linear trend fit, projection, moving averages, growth rates and
  seasonal averages (forecasting),
- gap-free monthly series built from transactions (series),
- a SQLite-backed transaction source and report snapshots (db),
- a thin command-line interface (cli).

The engine and forecasting modules are pure: they perform no I/O and keep
no state between calls. Storage, configuration and presentation live in
separate modules.


Version: 0.2.0

Usage:
    python -m smb_dre.cli --help
"""

__all__ = ["engine", "forecasting", "periods", "transactions"]

__version__ = "0.2.0"
