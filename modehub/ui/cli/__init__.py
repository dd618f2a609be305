"""CLI sub-commands and console progress listeners."""
