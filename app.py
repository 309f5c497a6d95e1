import logging
from datetime import time, timedelta

import click
from flask import Flask
from flask_migrate import Migrate
from sqlalchemy.exc import SQLAlchemyError

from config import Config
from discounts.registry import DiscountRegistry, get_registry
from discounts.storage import SqlCodeStore
from integrations.calendar import GoogleCalendarClient
from integrations.google_auth import GoogleTokenProvider
from integrations.row_store import InMemoryRowStore
from integrations.sheets import GoogleSheetsRowStore
from models import db
from routes import discounts_bp, health_bp, payments_bp, slots_bp, webhook_bp
from routes.errors import register_error_handlers
from scheduling.slots import SlotGuard
from services.notifications import register_booking_handlers
from utils.clock import utcnow
from utils.events import EventBus
from utils.scheduler import PeriodicTask
from utils.seed import seed_discount_codes

logger = logging.getLogger(__name__)


def _parse_hhmm(value: str):
    hours, minutes = (int(x) for x in value.split(":"))
    return time(hours, minutes)


def _google_tokens(app):
    cfg = app.config
    if not (cfg.get("GOOGLE_CLIENT_ID") and cfg.get("GOOGLE_CLIENT_SECRET") and cfg.get("GOOGLE_REFRESH_TOKEN")):
        return None
    return GoogleTokenProvider(
        cfg["GOOGLE_CLIENT_ID"],
        cfg["GOOGLE_CLIENT_SECRET"],
        cfg["GOOGLE_REFRESH_TOKEN"],
        timeout=cfg["ROW_STORE_TIMEOUT_SECONDS"],
    )


def _build_row_store(app, tokens):
    spreadsheet_id = app.config.get("GOOGLE_SPREADSHEET_ID")
    if tokens and spreadsheet_id:
        app.extensions["google_sheets_configured"] = True
        return GoogleSheetsRowStore(
            spreadsheet_id,
            tokens,
            sheet_range=app.config["GOOGLE_SHEET_RANGE"],
            timeout=app.config["ROW_STORE_TIMEOUT_SECONDS"],
        )
    logger.warning("Google Sheets not configured, bookings are kept in memory only")
    return InMemoryRowStore()


def create_app(test_config=None, row_store=None, code_store=None, calendar_client=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Collaborators
    tokens = _google_tokens(app)
    app.extensions["google_sheets_configured"] = False
    if row_store is None:
        row_store = _build_row_store(app, tokens)
    if calendar_client is None and tokens and app.config.get("GOOGLE_CALENDAR_ID"):
        calendar_client = GoogleCalendarClient(
            app.config["GOOGLE_CALENDAR_ID"],
            tokens,
            timezone=app.config["TIMEZONE"],
            timeout=app.config["ROW_STORE_TIMEOUT_SECONDS"],
        )
    app.extensions["calendar_client"] = calendar_client

    app.extensions["discount_registry"] = DiscountRegistry(code_store or SqlCodeStore())
    app.extensions["slot_guard"] = SlotGuard(
        row_store,
        business_hours=app.config["BUSINESS_HOURS"],
        horizon_days=app.config["BOOKING_HORIZON_DAYS"],
        cutoff=_parse_hhmm(app.config["SAME_DAY_CUTOFF"]),
        timezone=app.config["TIMEZONE"],
        confirmed_status=app.config["CONFIRMED_STATUS"],
        range_hint=app.config["GOOGLE_SHEET_RANGE"],
    )

    bus = EventBus()
    register_booking_handlers(bus)
    app.extensions["booking_events"] = bus

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(slots_bp)
    app.register_blueprint(discounts_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(webhook_bp)
    register_error_handlers(app)

    # Seed default discount codes at startup (safe & idempotent)
    with app.app_context():
        if app.config.get("AUTO_CREATE_TABLES"):
            db.create_all()
        try:
            seed_discount_codes()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.warning("Discount codes not seeded (run `flask db upgrade`): %s", exc)

    register_cli(app)

    interval = app.config.get("CODE_SWEEP_INTERVAL_SECONDS", 0)
    if interval and not app.testing:
        app.extensions["code_sweeper"] = PeriodicTask(
            "discount-code-sweep", interval, lambda: _sweep(app)
        ).start()

    return app


def _sweep(app):
    with app.app_context():
        get_registry().sweep_expired()

#-------------------------

def register_cli(app):
    @app.cli.command("seed-codes")
    def seed_codes():
        """Create the default discount codes if missing."""
        print(f"{seed_discount_codes()} codes created")

    @app.cli.command("generate-codes")
    @click.option("--category", default=None, help="general, seasonal, target, social, events, special, welcome")
    @click.option("--count", default=1, show_default=True, type=int)
    @click.option("--max-uses", default=100, show_default=True, type=int, help="0 for unlimited")
    @click.option("--valid-days", default=None, type=int, help="Expire after N days")
    @click.option("--value", default=10, show_default=True, type=int, help="Percent off")
    def generate_codes(category, count, max_uses, valid_days, value):
        """Generate a batch of discount codes."""
        valid_until = utcnow() + timedelta(days=valid_days) if valid_days else None
        registry = get_registry()
        for _ in range(count):
            discount = registry.generate(
                category,
                max_uses=max_uses or None,
                valid_until=valid_until,
                value=value,
            )
            print(f"{discount.code}\t{discount.description}")

    @app.cli.command("sweep-codes")
    def sweep_codes():
        """Deactivate expired discount codes."""
        print(f"{get_registry().sweep_expired()} codes deactivated")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
