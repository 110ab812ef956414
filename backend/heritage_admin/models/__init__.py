from heritage_admin.models.booking import (  # noqa: F401
    EventBooking,
    FoodBooking,
    GuideBooking,
    HotelBooking,
    TourBooking,
)
from heritage_admin.models.chat import ChatConversation, ChatMessage  # noqa: F401
from heritage_admin.models.content import (  # noqa: F401
    AppFeedback,
    CallSupportRequest,
    MarketingCampaign,
    MarketingMail,
    MasterData,
    MasterDataTranslation,
)
from heritage_admin.models.listing import HeritageArtisan, HeritageFood, HeritageHotel, HeritageSite  # noqa: F401
from heritage_admin.models.notification import NotificationLog, NotificationTemplate  # noqa: F401
from heritage_admin.models.user import HeritageUser, UserProfile, UserType, UserTypeTranslation  # noqa: F401
