"""mapstudio: field-level correspondence resolution between a source data shape and a target schema."""

__version__ = "0.1.0"
