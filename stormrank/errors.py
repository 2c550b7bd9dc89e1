"""
Error types
===========

Every fatal condition raised by STORMRANK derives from `StormRankError`,
so the CLI can report it with one `except` clause.

- `FetchError`: the dataset could not be downloaded.
- `ParseError`: the file is malformed or misses a required column.
- `StageError`: raised by the pipeline, names the stage that failed.
"""


class StormRankError(Exception):
    pass


class FetchError(StormRankError):
    pass


class ParseError(StormRankError, ValueError):
    pass


class StageError(StormRankError):
    """A pipeline stage failed. The original error is chained as __cause__."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"stage '{stage}' failed: {message}")
        self.stage = stage
