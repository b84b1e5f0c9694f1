"""Helpers for aligning values to powers of two."""


def _check_align(align: int) -> None:
    if align <= 0 or align & (align - 1):
        raise ValueError(f"alignment must be a power of two, got {align}")


def align_down(value: int, align: int) -> int:
    """Align ``value`` down to a multiple of ``align``."""
    _check_align(align)
    return value & ~(align - 1)


def align_up(value: int, align: int) -> int:
    """Align ``value`` up to a multiple of ``align``."""
    _check_align(align)
    return align_down(value + align - 1, align)