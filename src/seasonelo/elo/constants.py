"""
Rating system constants.

The season rating is not classical ELO (there is no expected-score term).
A match moves a flat fraction of the loser's rating to the winner, plus a
small fixed bonus for winning, so the rating pool grows by WIN_BONUS with
every match played:

    transferred = floor(loser * LOSS_FRACTION)
    loser'      = loser - transferred
    winner'     = winner + transferred + WIN_BONUS

Tournament winners get a bonus proportional to their rating at the end of
the season's match replay. Players who stop playing lose a compounding
fraction of their rating for every full inactivity period, applied only
when the rating is read.
"""

# Every player starts every season here; nothing carries over between seasons
STARTING_RATING = 100

# Fraction of the loser's rating transferred to the winner
LOSS_FRACTION = 0.08

# Flat bonus on top of the transferred points, independent of ratings
WIN_BONUS = 2

# Fraction of the winner's current rating awarded for a tournament win
TOURNAMENT_BONUS_FRACTION = 0.08

# Length of one inactivity period; decay is applied per whole period
INACTIVITY_PERIOD_DAYS = 60

# Compound fraction removed per inactivity period
INACTIVITY_PENALTY_FRACTION = 0.08

MS_PER_DAY = 86_400_000
