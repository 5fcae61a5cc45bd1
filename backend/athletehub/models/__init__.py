from .golf import GolfHoleScore, GolfParticipantScores, GolfScorecardData
from .group_post import GroupPost, GroupPostParticipant
from .profile import Profile

__all__ = [
    "Profile",
    "GroupPost",
    "GroupPostParticipant",
    "GolfScorecardData",
    "GolfParticipantScores",
    "GolfHoleScore",
]
