"""DocVault document storage and versioning core."""

__version__ = "1.0.0"
