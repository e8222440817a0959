"""Sandbox backends, registered under the cellbook.backends.sandbox entry point group."""
