class _BaseN5Error(ValueError):
    _msg = ""

    def __init__(self, *args):
        super().__init__(self._msg.format(*args))


class _BaseN5IndexError(IndexError):
    _msg = ""

    def __init__(self, *args):
        super().__init__(self._msg.format(*args))


class ContainsArrayError(_BaseN5Error):
    _msg = "path {0!r} contains a dataset"


class ContainsGroupError(_BaseN5Error):
    _msg = "path {0!r} contains a group"


class PathNotFoundError(_BaseN5Error):
    _msg = "nothing found at path {0!r}"


class DatasetNotFoundError(_BaseN5Error):
    _msg = "dataset not found at path {0!r}"


class UnsupportedDataTypeError(_BaseN5Error):
    _msg = "data type {0!r} is not supported by HDF5 storage"


class UnsupportedCompressionError(_BaseN5Error):
    _msg = "compression {0!r} is not supported; expected 'raw' or 'gzip'"


class AttributeConversionError(_BaseN5Error):
    _msg = "reading attribute {0!r} of type {1} as {2!r} is not yet supported"


class IncompatibleVersionError(_BaseN5Error):
    _msg = "incompatible N5-HDF5 version {0} (this is {1})"


class FileNotHDF5Error(_BaseN5Error):
    _msg = "file exists at {0!r} and is not a valid HDF5 file"


class BlockOutOfBoundsError(_BaseN5IndexError):
    _msg = "grid position {0} is outside of dataset with dimensions {1}"


class ReshapeNotSupportedError(NotImplementedError):
    def __init__(self):
        super().__init__("HDF5 datasets cannot be reshaped")


class ReadOnlyError(PermissionError):
    def __init__(self):
        super().__init__("object is read-only")
