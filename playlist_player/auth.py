import os
import logging
from typing import Optional
from pymonad.either import Either, Left, Right
from google_auth_oauthlib.flow import InstalledAppFlow
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from .domain.errors import AuthenticationError
from .domain.models import YouTubeClient

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/youtube.readonly"]

ENV_SECRET_KEYS = ("CLIENT_ID", "CLIENT_SECRET", "AUTH_URI", "TOKEN_URI")


def client_config_from_env() -> Optional[dict]:
    """Builds an installed-app client config from the environment, if complete."""
    values = {key: os.environ.get(key) for key in ENV_SECRET_KEYS}
    if not all(values.values()):
        return None
    return {
        "installed": {
            "client_id": values["CLIENT_ID"],
            "client_secret": values["CLIENT_SECRET"],
            "auth_uri": values["AUTH_URI"],
            "token_uri": values["TOKEN_URI"],
            "redirect_uris": ["http://localhost"],
        }
    }


def _build_flow(client_secrets_file: str):
    if os.path.exists(client_secrets_file):
        return InstalledAppFlow.from_client_secrets_file(client_secrets_file, SCOPES)

    env_config = client_config_from_env()
    if env_config:
        logger.info("Using client secrets from environment variables.")
        return InstalledAppFlow.from_client_config(env_config, SCOPES)
    return None


def get_credentials(
    token_file: str = "token.json", client_secrets_file: str = "client_secret.json"
):
    creds = None

    if os.path.exists(token_file):
        logger.info(f"Token file '{token_file}' found.")
        try:
            creds = Credentials.from_authorized_user_file(token_file, SCOPES)
        except Exception as e:
            logger.error(f"Error reading token file: {e}")
            return Left(AuthenticationError(f"Corrupt or invalid token file: {e}"))

    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            logger.info("Token expired, attempting refresh...")
            try:
                creds.refresh(Request())
                logger.info("Token refreshed successfully.")
            except Exception as e:
                logger.error(f"Token refresh failed: {e}. Starting full flow.")
                creds = None

        if not creds:
            logger.info("No valid token found, starting new authentication flow.")
            try:
                flow = _build_flow(client_secrets_file)
            except Exception as e:
                logger.error(f"Invalid client secrets: {e}")
                return Left(AuthenticationError(f"Invalid client secrets: {e}"))

            if flow is None:
                logger.error(f"Secrets file '{client_secrets_file}' not found.")
                return Left(
                    AuthenticationError(
                        f"File '{client_secrets_file}' not found and no "
                        f"{', '.join(ENV_SECRET_KEYS)} environment variables set. "
                        "Please download it from the Google Cloud Console."
                    )
                )

            try:
                creds = flow.run_local_server(port=0)
                logger.info("Authentication successful via local flow.")
            except Exception as e:
                logger.error(f"Authentication flow failed: {e}")
                return Left(AuthenticationError(f"Authentication flow failed: {e}"))

        try:
            with open(token_file, "w") as token:
                token.write(creds.to_json())
            logger.info(f"Token saved to '{token_file}'.")
        except Exception as e:
            logger.error(f"Could not save token: {e}")
            return Left(AuthenticationError(f"Could not save token: {e}"))

    logger.info("Valid credentials obtained.")
    return Right(creds)


def create_client(
    token_file: str = "token.json", client_secrets_file: str = "client_secret.json"
) -> Either[AuthenticationError, YouTubeClient]:
    """Obtains credentials and wraps them in the shared client handle."""
    return get_credentials(token_file, client_secrets_file).map(YouTubeClient)
