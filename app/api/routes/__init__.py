from . import questions

__all__ = ["questions"]
