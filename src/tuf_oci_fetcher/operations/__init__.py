"""Error mapping for the protocol layers that sit on top of the fetcher."""

from .mappers import EXIT_CODES, TUF_ERRORS, exit_code_for, run_and_exit, to_tuf_error

__all__ = ["EXIT_CODES", "TUF_ERRORS", "exit_code_for", "run_and_exit", "to_tuf_error"]
