"""
Core attachment storage logic.

This module is framework-agnostic - it does not import any storage client
library. Adapters in cloudattach.infrastructure implement the remote store
contract defined here.
"""
