import os


def _split(name: str) -> tuple[str, str]:
    head = name.rstrip('/' + os.sep) or name
    root, ext = os.path.splitext(head)
    if ext == '.':
        return head, ''
    return root, ext[1:]


def extension_of(name: str) -> str:
    """Get file extension.

    Parameters
    ----------
    name : str
        File name or path.

    Returns
    -------
    str
        Extension without the leading dot, empty string if there is none.
    """
    return _split(name)[1]


def stem_of(name: str) -> str:
    """Get file name without extension.

    Parameters
    ----------
    name : str
        File name or path.

    Returns
    -------
    str
        Name with extension and its dot removed.
    """
    stem, ext = _split(name)
    return stem if ext else name


def with_extension(stem: str, extension: str) -> str:
    if not extension:
        return stem
    return f'{stem}.{extension}'


def numbered_name(name: str, index: int, keep_extension: bool = False) -> str:
    """Build auto-name candidate.

    Parameters
    ----------
    name : str
        Original name.
    index : int
        Counter value.
    keep_extension : bool, default=False
        Put counter between stem and extension.

    Returns
    -------
    str
        Name like ``name(1)`` or ``name(1).ext``.
    """
    if keep_extension:
        return with_extension(f'{stem_of(name)}({index})', extension_of(name))
    return f'{name}({index})'
