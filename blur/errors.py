class BlurError(Exception):
    """Base class for every error that ends a run with exit status 1."""


class ConfigError(BlurError):
    pass


class CustomMatrixError(BlurError):
    """
    offset : 0-based position in text where parsing failed
    reason : short description, may be empty
    text   : the matrix specification as given on the command line
    """

    def __init__(self, text, offset, reason=""):
        self.text = text
        self.offset = offset
        self.reason = reason
        super().__init__(f"Custom matrix specification error: {reason}")

    def render(self):
        return "\n".join([
            str(self),
            "",
            "\t" + self.text,
            "\t" + " " * self.offset + "^",
        ])


class StreamOpenError(BlurError):
    pass


class SniffError(BlurError):
    pass


class DecodeError(BlurError):
    pass


class EncodeError(BlurError):
    pass
