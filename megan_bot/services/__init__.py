from megan_bot.services.advisor_service import AdvisorCommand, AdvisorService, CommandKind, parse_advisor_reply
from megan_bot.services.catalog_service import CatalogService
from megan_bot.services.inactivity_service import InactivityTimerRegistry
from megan_bot.services.intent_router import IntentRouter, TextRoute
from megan_bot.services.messenger_service import MessengerService
from megan_bot.services.purchase_flow import PurchaseFlow, validate_lima, validate_order, validate_provincia
from megan_bot.services.reply_service import ReplyService
from megan_bot.services.result import Result
from megan_bot.services.session_store import SessionStore, UserSession
from megan_bot.services.state_machine import Gender, InvalidStageError, Stage
