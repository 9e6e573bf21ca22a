"""Azure Functions V2 entry point for the share gateway."""

import os
import sys

# The Functions runtime only sees the app root; stl_share lives under src/
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))

import azure.functions as func

from stl_share.functions.http_trigger import bp as http_bp
from stl_share.functions.relay_trigger import bp as relay_bp
from stl_share.functions.share_trigger import bp as share_bp

app = func.FunctionApp()
app.register_blueprint(http_bp)
app.register_blueprint(relay_bp)
app.register_blueprint(share_bp)
