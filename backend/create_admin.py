"""
Script to grant the admin role to an existing ChargeSphere account.
The account must have registered first (POST /auth/register).

Usage:
    cd backend
    python create_admin.py admin@example.com
"""

import logging
import sys

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


async def promote_to_admin(email: str, db=None) -> str:
    """
    Set the admin custom claim and the profile role for an account.

    Args:
        email: Email of the registered account
        db: FirebaseDB gateway (defaults to the application one)

    Returns:
        str: The promoted user's uid

    Raises:
        firebase_admin.auth.UserNotFoundError: No account with this email
    """
    from firebase_admin import auth
    from database.firebase_db import get_db
    from models.user import UserRole

    db = db or get_db()
    user = auth.get_user_by_email(email)

    auth.set_custom_user_claims(user.uid, {"role": UserRole.ADMIN.value})
    await db.upsert_user_profile(user.uid, {
        "email": (user.email or email).lower(),
        "name": user.display_name,
        "role": UserRole.ADMIN.value,
    })

    logger.info(f"User {user.uid} promoted to admin")
    return user.uid


def main():
    import asyncio
    from firebase_admin import auth
    from database.firebase_db import init_firebase

    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)

    email = sys.argv[1]
    init_firebase()

    try:
        uid = asyncio.run(promote_to_admin(email))
    except auth.UserNotFoundError:
        print(f"No account registered with {email}")
        sys.exit(1)

    print(f"{email} (uid {uid}) is now an admin.")
    print("The user must sign in again for the new role to apply to their token.")


if __name__ == "__main__":
    main()
