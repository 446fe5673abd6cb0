"""Errors raised by the round-robin core."""


class TournamentError(Exception):
    """Base class for every error the tournament core raises."""


class InvalidConfigurationError(TournamentError):
    """Tournament creation input cannot produce a schedule."""


class GeneratorConsistencyError(TournamentError):
    """The round generator could not place every participant exactly once."""


class SnapshotImportError(TournamentError):
    """An imported snapshot could not be parsed into a tournament."""


class NoActiveTournamentError(TournamentError):
    """A command needs a tournament but none is loaded."""


class MatchNotFoundError(TournamentError):
    """No match with the requested id exists."""


class InvalidCommandError(TournamentError):
    """Command arguments are out of range."""
