"""Exception types raised by the analysis engine."""


class AnalysisError(Exception):
    """Base error for every failure surfaced to callers."""


class ManifestError(AnalysisError):
    """Entry-point manifest is unreadable, malformed or empty."""


class PluginError(AnalysisError):
    """A plugin failed while booting or running."""

    def __init__(self, plugin_name: str, message: str):
        self.plugin_name = plugin_name
        super().__init__(f"Plugin '{plugin_name}': {message}")
