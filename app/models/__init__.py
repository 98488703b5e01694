from .companion import Companion
from .swipe_decision import SwipeDecision, SwipeDecisionType
from .match import Match
from .conversation import Conversation, ConversationStatus
from .message import Message, MessageAuthor, MessageType
from .user_profile import UserProfile, UserPreferences, UserStats
from .user_media import UserProfilePic, UserBanner
