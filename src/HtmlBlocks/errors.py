"""Exception hierarchy."""


class HtmlBlocksError(Exception):
    pass


class ConfigError(HtmlBlocksError):
    pass


class TreeFormatError(HtmlBlocksError, ValueError):
    pass
