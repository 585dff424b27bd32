"""Script to create the demo accounts (one per role) in the database."""
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from onduty.database import SessionLocal, init_db
from onduty.logging_config import configure_logging
from onduty.seed import DEFAULT_USERS, seed_database


def main() -> int:
    configure_logging()
    init_db()
    
    db = SessionLocal()
    try:
        created = seed_database(db)
        print(f"Created {created} of {len(DEFAULT_USERS)} demo users")
        for account in DEFAULT_USERS:
            print(f"  {account['role'].value:<10} {account['email']} / {account['password']}")
        return 0
    except Exception as e:
        print(f"Error seeding demo data: {e}")
        db.rollback()
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
