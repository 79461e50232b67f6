# Constants.py
# Description: Constants shared by the sync, storage and library layers
#
# Imports
#
# 3rd-Party Imports
#
# Local Imports
#
########################################################################################################################
#
# Functions:

# --- Collections ---
COLLECTION_QUIZZES = "quizzes"
COLLECTION_SESSIONS = "sessions"
COLLECTION_FLASHCARDS = "flashcards"
ALL_COLLECTIONS = [COLLECTION_QUIZZES, COLLECTION_SESSIONS, COLLECTION_FLASHCARDS]

# Local store keys (kept from the browser build so exported data stays compatible)
LOCAL_KEY_QUIZZES = "custom-quizzes"
LOCAL_KEY_SESSIONS = "quiz-sessions"
LOCAL_KEY_FLASHCARDS = "flashcard-decks"
LOCAL_KEY_SETTINGS = "quiz-app-settings"

# --- Remote layout ---
USERS_ROOT = "users"
SETTINGS_DOC_ID = "app"
METADATA_DOC_ID = "app"


def collection_path(user_id: str, collection_name: str) -> str:
    return f"{USERS_ROOT}/{user_id}/{collection_name}"


def record_path(user_id: str, collection_name: str, record_id: str) -> str:
    return f"{USERS_ROOT}/{user_id}/{collection_name}/{record_id}"


def settings_path(user_id: str) -> str:
    return f"{USERS_ROOT}/{user_id}/settings/{SETTINGS_DOC_ID}"


def metadata_path(user_id: str) -> str:
    return f"{USERS_ROOT}/{user_id}/metadata/{METADATA_DOC_ID}"


# --- Sync tuning ---
DEFAULT_DEBOUNCE_SECONDS = 2.0
# Fields stamped by the sync layer itself; never part of a content comparison
VOLATILE_FIELDS = ("updatedAt", "createdAt", "lastSync")
FIRESTORE_BATCH_LIMIT = 500

# --- Default quiz ---
DEFAULT_QUIZ_ID = "default-quiz"
DEFAULT_QUIZ_RESOURCE = "default_quiz.json"

# --- Settings secret field ---
SECRET_SETTINGS_FIELD = "geminiApiKey"
SECRET_SETTINGS_HASH_FIELD = "geminiApiKeyHash"
API_KEY_SALT = b"quiz-app-gemini-key-salt-v1"
API_KEY_KDF_ITERATIONS = 100_000

# --- User-facing sync messages ---
MSG_BLOCKED = ("Sync failed: Please disable your ad blocker for this site and try again. "
               "Common ad blockers: uBlock Origin, AdBlock Plus, Brave Shield")
MSG_NOT_SIGNED_IN = "User must be signed in to sync data"
MSG_NOT_CONFIGURED = "Cloud sync is not configured"
MSG_PERMISSION_DENIED = ("Sync failed: the cloud store refused access to your data. "
                         "Please sign in again; if this keeps happening the database security rules need attention.")

#
# End of Constants.py
########################################################################################################################
