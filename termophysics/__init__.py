import os
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

from termophysics.logging_config import configure_logging

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()


def create_app(config=None):
    app = Flask(__name__)

    # 1. Secret Key (Security)
    app.secret_key = os.environ.get('SECRET_KEY', 'dev_secret_key_fallback')

    # 2. Database Configuration
    # Prioritize 'DATABASE_URL' from environment (Docker/Render)
    # Fallback to local SQLite if no URL is found
    database_url = os.environ.get('DATABASE_URL')

    if database_url:
        # SQLAlchemy requires 'postgresql://' instead of 'postgres://'
        if database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql://", 1)
        app.config['SQLALCHEMY_DATABASE_URI'] = database_url
    else:
        # Local Development Fallback
        app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///termophysics.db'

    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['MAX_CONTENT_LENGTH'] = 20 * 1024 * 1024

    # 3. AI tutor
    app.config['GROQ_API_KEY'] = os.environ.get('GROQ_API_KEY')
    app.config['GROQ_MODEL'] = os.environ.get('GROQ_MODEL', 'llama-3.3-70b-versatile')
    app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO')

    if config:
        app.config.update(config)

    configure_logging(app.config['LOG_LEVEL'])

    # 4. Initialize Plugins
    db.init_app(app)
    migrate.init_app(app, db)

    # 5. Register Blueprints (Routes) and error handlers
    from termophysics.errors import register_error_handlers
    from termophysics.auth import auth
    from termophysics.routes import routes
    from termophysics.quiz_routes import quiz_routes
    from termophysics.tutor import tutor

    register_error_handlers(app)
    app.register_blueprint(auth, url_prefix='/auth')
    app.register_blueprint(routes)
    app.register_blueprint(quiz_routes)
    app.register_blueprint(tutor)

    # 6. Create Database Tables (if they don't exist)
    with app.app_context():
        db.create_all()

    return app
