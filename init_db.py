"""
Database initialization script for deployment
Run with: python init_db.py
"""

from app import create_app
from models import db, init_default_data


def initialize_database():
    """Initialize database tables and the default owner account"""
    app = create_app()
    with app.app_context():
        print("Creating database tables...")
        db.create_all()

        print("Initializing default data...")
        owner = init_default_data(app.config['ADMIN_EMAIL'], app.config['ADMIN_PASSWORD'])

        print("Database initialized successfully!")
        print(f"Owner account: {owner.email}")


if __name__ == "__main__":
    initialize_database()
