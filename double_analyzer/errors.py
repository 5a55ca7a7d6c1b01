class AnalyzerError(Exception):
    """Base class for all double_analyzer errors."""


# reader

class ReaderError(AnalyzerError):
    pass


class TransientReadError(ReaderError):
    """Recoverable: the cycle yields an empty batch and the session is kept."""


class SelectorNotFound(TransientReadError):
    pass


class InteractionTimeout(TransientReadError):
    pass


class SessionLost(ReaderError):
    """The browser session is unusable and must be torn down and reopened."""


# store

class StoreWriteError(AnalyzerError):
    """A batch was rolled back; retry on the next cycle."""


# collector

class CollectorError(AnalyzerError):
    pass


class CollectorStartError(CollectorError):
    pass


class CollectionInProgress(CollectorError):
    pass


class CollectorNotRunning(CollectorError):
    pass
