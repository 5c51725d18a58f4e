"""
Fee payload models and parsers.

Converts raw fee-estimate responses from upstream APIs into the canonical
``Fees`` snapshot consumed by the refresh controller.
"""
