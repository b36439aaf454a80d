"""
Firebase Admin Initialization

Single place where the firebase_admin App is created. The Firestore,
Auth and Storage collaborators all share this App so the service account
is loaded once per process.

Credentials resolution:
    - FIREBASE_CREDENTIALS_PATH set → service account JSON file
    - otherwise → Application Default Credentials (GOOGLE_APPLICATION_CREDENTIALS,
      workload identity, gcloud login)
"""

import logging
from functools import lru_cache

import firebase_admin
from firebase_admin import credentials

from foodz.core.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_firebase_app() -> firebase_admin.App:
    """Initialize (once) and return the shared firebase_admin App."""
    settings = get_settings()

    if settings.firebase_credentials_path:
        cred = credentials.Certificate(settings.firebase_credentials_path)
    else:
        cred = credentials.ApplicationDefault()

    options = {}
    if settings.firebase_project_id:
        options["projectId"] = settings.firebase_project_id
    if settings.firebase_storage_bucket:
        options["storageBucket"] = settings.firebase_storage_bucket

    app = firebase_admin.initialize_app(cred, options, name="foodz")
    logger.info(f"Firebase app initialized (project={settings.firebase_project_id})")
    return app
