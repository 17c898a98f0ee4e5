# function_app.py

import logging

import azure.functions as func

from config_utils import load_config
from deletedocs_function import build_blueprint as deletedocs_blueprint
from retirehistory_function import build_blueprint as retirehistory_blueprint

logger = logging.getLogger()
logger.setLevel(logging.INFO)

config = load_config()

app = func.FunctionApp()
app.register_functions(deletedocs_blueprint(config))
app.register_functions(retirehistory_blueprint(config))
