from typing import Iterable, List


def rank_players(players: Iterable) -> List:
    """Order players for the final standings.

    Most taps first; ties go to whoever joined the session earlier, so the
    same final player set always produces the same ranking.
    """
    return sorted(players, key=lambda p: (-p.tap_count, p.join_order))
