"""gangsheet: layout engine for DTF gang sheets.

Places rectangular artwork instances on a fixed-size print sheet, keeps
them inside the sheet and apart from each other (including the deadspace
margin the transfer process needs), and drives interactive editing from a
single synchronous state store.
"""

__version__ = "0.1.0"
