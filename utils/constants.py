"""
utils/constants.py

Purpose: Centralized static content

- OTP broadcast template
- Chat command names, usage hints and replies
- Pairing API response strings

(Prevents hardcoding across the codebase)
"""

# ============================================================
# OTP BROADCAST
# ============================================================

NOTIFICATION_FOOTER = "© Developed by 𝙎𝙞𝙡𝙚𝙣𝙩 𝙃𝙖𝙘𝙠𝙚𝙧𝙨"

OTP_NOTIFICATION_TEMPLATE = (
    "✨ *{flag} | {service_upper} Message {api_index}* ⚡\n\n"
    "> *Time:* {time}\n"
    "> *Country:* {flag} {country}\n"
    "   *Number:* *{phone}*\n"
    "> *Service:* {service}\n"
    "   *OTP:* *{otp}*\n\n"
    "> *Join For Numbers:* \n"
    "> {link}\n\n"
    "*Full Message:*\n"
    "{message}\n\n"
    "> {footer}"
)

# ============================================================
# CHAT COMMANDS
# ============================================================

CMD_ID = ".id"
CMD_ACTIVE = ".active"
CMD_DEACTIVE = ".deactive"
CMD_CHANGE = ".change"
CMD_LIST = ".list"

ID_REPLY = "👤 *User:* `{sender}`\n📍 *Chat:* `{chat}`"

ACTIVE_USAGE = "❌ Usage: .active <Channel_ID>"
ACTIVE_SUCCESS = "✅ Channel Activated!\nMessages will now flow to: {channel}"

DEACTIVE_USAGE = "❌ Usage: .deactive <Channel_ID>"
DEACTIVE_SUCCESS = "✅ Channel Deactivated!"

CHANGE_USAGE = "❌ Usage: .change <New_Link>"
CHANGE_SUCCESS = "✅ Footer Link Updated!\nNew Link: {link}"

LIST_HEADER = "📋 *Active Channels:*\n"
LIST_EMPTY = "No active channels."
LIST_ITEM = "- `{channel}`\n"
LIST_LINK = "\n🔗 *Current Link:*\n{link}"

COMMAND_ERROR = "⚠️ Error: {error}"

# ============================================================
# PAIRING API
# ============================================================

SESSIONS_DELETED_STATUS = "All Sessions Deleted"
