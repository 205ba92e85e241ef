"""
Adapters — the only code that touches external tools.

Services describe work as Actions; adapters execute them and answer
with Receipts. Privileged operations live behind a single adapter.
"""
