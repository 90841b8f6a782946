"""Language server for the Faust audio programming language: JSON-RPC transport, document store and workspace mirroring."""

__version__ = "0.0.1"