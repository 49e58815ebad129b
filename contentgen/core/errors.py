"""Internal exception types shared by the provider transports and adapters.

None of these ever reach the HTTP layer: adapters convert them into
`AdapterOutcome` values before returning.
"""


class ResponseFormatError(ValueError):
    """A 2xx provider response is missing the fields the adapter needs."""


class AdapterFailure(Exception):
    """Carries the non-success outcome of one adapter call."""

    def __init__(self, outcome):
        super().__init__(outcome.describe())
        self.outcome = outcome
