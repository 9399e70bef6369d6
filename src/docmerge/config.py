'''
 Environment driven settings for docmerge.
 This module should not import any other docmerge modules to avoid circular imports.
'''
from dotenv import load_dotenv
import os

# Load environment variables
load_dotenv()

# Read the log level from the environment variable, defaulting to 'INFO'
LOGGER_LEVEL = os.getenv('LOGGER_LEVEL', 'INFO').upper()

# Max document types per FieldEngine instance; re-registration does not count twice
MAX_DOCUMENT_TYPES = int(os.getenv('DOCMERGE_MAX_DOCUMENT_TYPES', '1000'))

# Base class applied to every rendered control
FIELD_CLASS_PREFIX = os.getenv('DOCMERGE_FIELD_CLASS_PREFIX', 'field-input')
