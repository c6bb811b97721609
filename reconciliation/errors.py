"""Engine error types.

Transport failures are MAMApiError (connectors.mam_base). The errors here
cover the other two failure classes: run-wide preconditions and per-asset
migration integrity failures.
"""


class PreconditionError(Exception):
    """A global precondition failed; the run must stop before any work."""
    pass


class MigrationError(Exception):
    """Hard failure of one asset's migration; later steps are skipped."""
    def __init__(self, step: str, message: str):
        super().__init__(message)
        self.step = step


class NoReferenceFileError(MigrationError):
    """The asset has no usable file record or format to migrate."""
    pass


class SourceMissingError(MigrationError):
    """The file is on neither the destination nor the source mount."""
    pass


class SizeMismatchError(MigrationError):
    """The copied file's size differs from the source."""
    def __init__(self, step: str, source_size: int, dest_size: int):
        super().__init__(step, f"Copy size mismatch (src={source_size} dst={dest_size})")
        self.source_size = source_size
        self.dest_size = dest_size


class SizeConflictError(MigrationError):
    """Source and destination copies both exist with different sizes.

    Neither copy is assumed authoritative; an operator has to decide.
    """
    def __init__(self, step: str, source_size: int, dest_size: int):
        super().__init__(
            step,
            f"Source and destination both exist with different sizes "
            f"(src={source_size} dst={dest_size}); operator attention required",
        )
        self.source_size = source_size
        self.dest_size = dest_size
