import logging

from termophysics import create_app, db

logger = logging.getLogger("termophysics.init_db")


def init_database():
    app = create_app()
    with app.app_context():
        db.create_all()
        logger.info("Database tables created at %s", app.config['SQLALCHEMY_DATABASE_URI'])


if __name__ == "__main__":
    init_database()
