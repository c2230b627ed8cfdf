#!/usr/bin/env python3

from datetime import timedelta
from decimal import Decimal

from ticketdesk.database import SessionLocal, init_db
from ticketdesk.models import Account, Booking, BookingGroup, BookingRecord, Handler
from ticketdesk.timestamps import utcnow

def create_seed_data():
    init_db()
    db = SessionLocal()

    try:
        print("🚀 Creating seed data for the ticket booking desk...")

        # Clear existing data (in reverse dependency order)
        print("Clearing existing data...")
        db.query(BookingRecord).delete()
        db.query(Booking).delete()
        db.query(BookingGroup).delete()
        db.query(Handler).delete()
        db.query(Account).delete()

        now = utcnow()
        today = now.date()

        # 1. Create Handlers
        print("Creating handlers...")
        handlers = [
            Handler(name="Asha"),
            Handler(name="Ravi"),
            Handler(name="Meera")
        ]
        db.add_all(handlers)
        db.flush()

        # 2. Create Reservation Accounts
        print("Creating reservation accounts...")
        accounts = [
            Account(username="acct_north", password="changeme", wallet_amount=Decimal("2500.00")),
            Account(username="acct_south", password="changeme", wallet_amount=Decimal("1200.00")),
            Account(username="acct_east", password="changeme", wallet_amount=Decimal("0.00"))
        ]
        db.add_all(accounts)
        db.flush()

        # 3. Create Bookings
        print("Creating bookings...")
        bookings = [
            Booking(
                source="NDLS", destination="BCT",
                journey_date=today + timedelta(days=1), booking_date=today,
                user_name="Sharma", class_type="3A", booking_type="Tatkal",
                passengers=[{"name": "Anil Sharma", "age": 42, "gender": "M"},
                            {"name": "Sunita Sharma", "age": 39, "gender": "F", "berthPreference": True}],
                train_preference="12952 Rajdhani", status="Requested",
                created_at=now - timedelta(hours=5)
            ),
            Booking(
                source="SBC", destination="MAS",
                journey_date=today + timedelta(days=2), booking_date=today,
                user_name="Iyer", class_type="SL", booking_type="Tatkal",
                passengers=[{"name": "K Iyer", "age": 67, "gender": "M"}],
                remarks="Lower berth for senior", status="Failed (Paid)",
                status_reason="Waitlisted after payment", status_handler="Ravi",
                created_at=now - timedelta(hours=4)
            ),
            Booking(
                source="HWH", destination="PNBE",
                journey_date=today - timedelta(days=3), booking_date=today - timedelta(days=4),
                user_name="Das", class_type="2A", booking_type="General",
                passengers=[{"name": "Rupa Das", "age": 30, "gender": "F"}],
                status="Booked", status_handler="Asha",
                created_at=now - timedelta(days=4)
            ),
            Booking(
                source="ADI", destination="BRC",
                journey_date=today - timedelta(days=1), booking_date=today - timedelta(days=2),
                user_name="Patel", class_type="CC", booking_type="Tatkal",
                passengers=[{"name": "Hetal Patel", "age": 25, "gender": "F"}],
                status="Requested",
                created_at=now - timedelta(days=2)
            )
        ]
        db.add_all(bookings)
        db.flush()

        # 4. Create Payment Records
        print("Creating payment records...")
        booked = bookings[2]
        records = [
            BookingRecord(
                booking_id=booked.id, booking_ids=[booked.id],
                booked_by="Asha", booked_account_username="acct_north",
                amount_charged=Decimal("1845.50"), method_used="Wallet",
                created_at=booked.created_at + timedelta(hours=1)
            )
        ]
        db.add_all(records)

        # Wallet and last booked date reflect the seeded wallet payment
        accounts[0].wallet_amount -= Decimal("1845.50")
        accounts[0].last_booked_date = booked.booking_date

        # Commit all changes
        db.commit()
        print("✅ Successfully created seed data for the ticket booking desk!")
        print(f"Created:")
        print(f"  - {len(handlers)} handlers")
        print(f"  - {len(accounts)} reservation accounts")
        print(f"  - {len(bookings)} bookings")
        print(f"  - {len(records)} payment records")

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
