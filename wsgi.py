"""WSGI entry point for production deployment."""
import sys
import logging
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).parent))

from config import load_config
from utils.logger import setup_logging
from models.database import Database
from monitor.service import build_service
from web.app import create_app

logger = logging.getLogger("metricwatch.wsgi")

config = load_config()
setup_logging(config["logging"]["level"], config["logging"].get("file"))

db_path = config["database"]["path"]
Path(db_path).parent.mkdir(parents=True, exist_ok=True)
db = Database(db_path)
db.connect()

service = build_service(config, db)
app = create_app(config, service)
logger.info(f"metricwatch API ready (db={db_path})")
