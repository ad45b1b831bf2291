"""
Flask endpoint for completing the Google OAuth flow in a browser.
"""

import logging
import threading
from typing import Tuple

from flask import Flask, render_template_string, request
from werkzeug.serving import BaseWSGIServer, make_server

from .auth_client import AuthorizationClient
from .credential_store import CredentialStore
from .errors import AuthorizationError, ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ERROR_PAGE = """
<p>Error: OAuth client could not be initialized. Check <code>{{ credentials_path }}</code> and server logs.</p>
<p>{{ error }}</p>
"""

AUTHORIZE_PAGE = """
<p>This application requires Google Calendar access for reading and adding events.</p>
<p><a href="{{ auth_url }}">Authorize with Google</a></p>
<p>After authorization, you will be redirected to <code>/oauth2callback</code>.</p>
"""

AUTHORIZED_PAGE = """
<p>Authorized! The MCP server is running and ready to use the Calendar API.</p>
<p>You can now send commands to the MCP server that utilize the Google Calendar tools.</p>
<p>Tokens saved to <code>{{ token_path }}</code>. You can close this browser tab.</p>
"""


def create_app(auth_client: AuthorizationClient, store: CredentialStore) -> Flask:
    app = Flask(__name__)

    @app.route("/")
    def index():
        # pick up a credentials.json placed after startup
        try:
            auth_client.load()
        except ConfigurationError as e:
            logger.error("Error loading client secret file: %s", e)
            return render_template_string(
                CONFIG_ERROR_PAGE, credentials_path=store.credentials_path, error=str(e)
            ), 500

        if not auth_client.is_authorized():
            return render_template_string(AUTHORIZE_PAGE, auth_url=auth_client.build_consent_url())
        return render_template_string(AUTHORIZED_PAGE, token_path=store.token_path)

    @app.route("/oauth2callback")
    def oauth_callback():
        """Handle Google redirect → exchange `code` for tokens."""
        code = request.args.get("code")
        if not code:
            return "Authorization code not found.", 400

        if not auth_client.is_configured():
            try:
                auth_client.load()
            except ConfigurationError as e:
                logger.error("Error loading client secret file: %s", e)
                return "Error: OAuth client could not be initialized. Check credentials.json and server logs.", 500

        try:
            auth_client.exchange_code(code)
        except AuthorizationError as e:
            logger.error("Error retrieving access token: %s", e)
            return "Error during authorization. Check server logs.", 500

        return (
            "Authorization successful! Tokens stored. You can now use the MCP tools. "
            "Return to the terminal where the MCP server is running."
        )

    return app


def run_web_server(app: Flask, port: int, host: str = "127.0.0.1") -> Tuple[BaseWSGIServer, threading.Thread]:
    """Serve `app` on a daemon thread so the MCP transport can own the main thread.

    Uses werkzeug's server directly: `app.run` echoes a banner to stdout,
    which is the MCP stdio channel.
    """
    server = make_server(host, port, app, threaded=True)

    server_thread = threading.Thread(target=server.serve_forever, name="oauth-web", daemon=True)
    server_thread.start()
    port = server.server_address[1]
    logger.info("Web server for OAuth listening on port %d", port)
    logger.info("Please visit http://localhost:%d to authorize the application if needed.", port)
    return server, server_thread
