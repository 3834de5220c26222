"""
Environment settings for fin-space.
"""
import os
from dotenv import load_dotenv

# Load environment variables from a .env file in the working directory
load_dotenv()

# Configuration file
CONFIG_PATH = os.getenv('FINSPACE_CONFIG', 'config.json')

# Forces dry-run mode regardless of the configuration file
DEBUG_OVERRIDE = os.getenv('FINSPACE_DEBUG', 'false').lower() == 'true'

# Logging
LOG_LEVEL = os.getenv('FINSPACE_LOG_LEVEL', 'INFO').upper()
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Status server
METRICS_PORT = os.getenv('FINSPACE_METRICS_PORT')

# Loop defaults, in minutes
DEFAULT_WAIT_TIME_MINUTES = 5
DEFAULT_ERROR_WAIT_MINUTES = 5

# Directory walks stop descending past this depth
DEFAULT_MAX_SCAN_DEPTH = 256
