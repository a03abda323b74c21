"""
servicebinding-projector CLI

Commands:
- servicebinding-projector project - Project a binding onto a workload manifest
- servicebinding-projector unproject - Remove a binding from a workload manifest
- servicebinding-projector is-projected - Check whether a binding is projected
"""

__version__ = "0.1.0"
