import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    API_BASE_URL = os.environ.get('API_BASE_URL', 'http://localhost:8080')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
