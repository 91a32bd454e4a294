class TatetiError(Exception):
    """
    base for errors raised at the input boundary
    """


class InvalidCoordinate(TatetiError, ValueError):
    """
    row/col missing, non-numeric, or outside the 3x3 board
    """


class ProtocolError(TatetiError):
    """
    peer sent a payload we cannot decode
    """
