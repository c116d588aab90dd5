"""aliasflow: flow-sensitive, field-sensitive points-to analysis over a small SSA IR."""

__version__ = "0.1.0"
