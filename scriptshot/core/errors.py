"""
Errors raised by script capabilities (img, files, share) and script storage.

Scripts see ImageError, FileError and ShareError as globals and may catch them.
"""


class ScriptCapabilityError(Exception):
    """Base for errors raised synchronously by a capability call."""

    pass


class ImageError(ScriptCapabilityError):
    """Image path missing, unreadable or not decodable."""

    pass


class FileError(ScriptCapabilityError):
    """files.* failure: missing file on read, write failure, path outside the storage root."""

    pass


class ShareError(ScriptCapabilityError):
    """Invalid share path or no share target available."""

    pass


class ScriptNotFoundError(LookupError):
    """No stored or built-in script with the requested name."""

    pass
