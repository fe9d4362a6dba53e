# cartshare/api/dependencies.py
from cartshare.utils.clock import Clock, utcnow


def get_clock() -> Clock:
    #nadpisywane w testach (symulowany czas)
    return utcnow
