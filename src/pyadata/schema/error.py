class SchemaError(Exception):
    """Exception raised when a schema cannot be compiled into codecs."""
    def __init__(self, message: str, type_name: str | None = None, member: str | None = None):
        self.type_name = type_name
        self.member = member
        location = '.'.join(part for part in (type_name, member) if part)
        super().__init__(f'{location}: {message}' if location else message)


class SchemaFormatError(SchemaError):
    """Exception raised when a serialized schema tree is malformed."""
    def __init__(self, message: str):
        super().__init__(message)
