"""
Verification Engine - Message templates
"""

from roster.records import FresherStatus

INFO_MSG = """\
Nano is a Discord bot written with discord.py and FastAPI.

It allows members and Imperial students to automatically verify themselves and gain access to the ICAS Discord server.

If you have any questions, feel free to ping or message {contact}
"""

SETUP_MSG = """\
Welcome to the ICAS Discord server!

To get access to the rest of the server, please verify yourself using the button below.
"""

START_MSG = """\
There are 3 available methods for verification.
- 🚀 Automatic verification via Imperial Login (Quickest)
- ✈️ Automatic verification via ICAS Membership (Easiest)
- 🚗 Manual verification, eg. using College ID Card or Acceptance Letter
"""

LOGIN_INTRO = """\
To use automatic verification via Imperial Login:
- Open the link provided and login using your shortcode
- Your account will be checked and then the login details immediately discarded
- Your shortcode will then be connected to your Discord Account by Nano

You can then complete the remaining details in the next step!
"""

LOGIN_FORM = """\
Congratulations, your Imperial shortcode has been connected to your Discord Account by Nano!

The last step is a short form with some extra details
"""

FRESHER_QUESTION = "Are you a fresher?"
NAME_PROMPT = "And a preferred name for Nano whois commands"

MEMBERSHIP_INTRO = """\
To use automatic verification via Membership:
- Enter your Union order number (from this academic year)
- Enter your Imperial shortcode
- Enter your preferred name for Nano whois commands
- Your shortcode will then be connected to your Discord Account by Nano

First, are you a fresher?
"""

MANUAL_INTRO = """\
Submit details to be manually checked by a committee member:
- Your Imperial Shortcode
- Your First and Last Names as on your Imperial record
- Preferred First and Last Names for the Nano whois command
- URL to proof of being an Imperial student, e.g. photo of College ID Card \
or screenshot of College Acceptance Letter, if you need to upload this, \
you can send it in a DM and then copy the image URL

We try to respond quickly but this may take a day or two during busy term times :)

First, are you a fresher?
"""

ALREADY_VERIFIED = "Welcome, you're already verified, re-applied your roles!"
GENERIC_FAILURE = "Sorry, something went wrong. Please try again or message {contact} for help"
TRY_AGAIN = "Sorry, something went wrong. Please try again"
LOGIN_NOT_COMPLETED = "Error, have you completed login verification via the link?"
LOGIN_EXPIRED = "Sorry, your login could not be found, please redo the login step"
INVALID_NAME = "Please enter a preferred name between 1 and {max_length} characters"
ROSTER_FETCH_FAILED = "Sorry, getting membership data failed. Please try again"
ORDER_NOT_FOUND = (
    "Sorry, your order was not found, please check the order number "
    "and that it is for your current year's membership"
)
ALREADY_MEMBER = "Sorry, you're already verified, press Begin again to re-apply your roles"
INVALID_URL = "The url provided is invalid, please try again"
MISSING_DETAILS = "Please enter both your Imperial shortcode and your name as on your Imperial record"

MANUAL_SENT = "Thanks, your verification request has been sent, we'll try to get back to you quickly!"
MANUAL_SENT_NOT_SAVED = (
    "Thanks, your verification request has been sent, but there was an issue, "
    "please ask a Committee member to take a look!"
)
MANUAL_SEND_FAILED = "Sending your verification request failed, please try again."

REVIEW_NOT_FOUND = "Failed to add user {mention} to member database, the request may already have been handled"
REVIEW_MEMBER_MISSING = "User {identity} is no longer in the server"

PARTIAL_FAILURE = (
    "\n\nSome of your roles could not be updated, "
    "please ask a Committee member to take a look!"
)
AUDIT_FAILURE = (
    "\n\nYour verification could not be logged for the committee, "
    "please ask a Committee member to take a look!"
)

_WELCOME = (
    "Welcome to ICAS {mention}, if you have any questions, "
    "feel free to ping a committee member{suffix}!"
)
_CONGRATULATIONS = "Congratulations, you have completed verification and now have access to the ICAS Discord"


def welcome_message(mention: str, fresher: FresherStatus) -> str:
    suffix = ", and look out for other freshers in green" if fresher.is_fresher else ""
    return _WELCOME.format(mention=mention, suffix=suffix)


def congratulations(fresher: FresherStatus) -> str:
    if fresher.is_fresher:
        return f"{_CONGRATULATIONS} and freshers thread"
    return _CONGRATULATIONS
