from mangum import Mangum
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from earnings.api import app


handler = Mangum(app, api_gateway_base_path="/api")
