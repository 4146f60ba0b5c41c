import json
import logging
import os
from pathlib import Path

import firebase_admin
from firebase_admin import credentials

logger = logging.getLogger(__name__)

# Path to Service Account Key (Local Fallback)
BASE_DIR = Path(__file__).resolve().parent.parent

possible_paths = [
    BASE_DIR / 'config' / 'serviceAccountKey.json',
    BASE_DIR / 'serviceAccountKey.json',
]


def find_credentials_file():
    for p in possible_paths:
        if p.exists():
            return str(p)
    return None


def initialize_firebase(database_url=None):
    """
    Initialise the default Firebase Admin app once per process.

    Credentials come from the FIREBASE_CREDENTIALS environment variable
    (service account JSON) or a local serviceAccountKey.json. Returns the
    app, or None when no credentials are available.
    """
    if firebase_admin._apps:
        return firebase_admin.get_app()

    options = {'databaseURL': database_url} if database_url else None

    firebase_creds_json = os.getenv('FIREBASE_CREDENTIALS')
    if firebase_creds_json:
        cred = credentials.Certificate(json.loads(firebase_creds_json))
        app = firebase_admin.initialize_app(cred, options)
        logger.info("Firebase Admin initialised from environment")
        return app

    cred_path = find_credentials_file()
    if cred_path:
        app = firebase_admin.initialize_app(credentials.Certificate(cred_path), options)
        logger.info("Firebase Admin initialised with file: %s", cred_path)
        return app

    logger.warning("serviceAccountKey.json not found and FIREBASE_CREDENTIALS not set; Firebase is disabled.")
    return None
