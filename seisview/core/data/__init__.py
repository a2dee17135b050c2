"""Binary data formats."""
