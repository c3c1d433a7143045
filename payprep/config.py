import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.dirname(__file__))


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key')
    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', os.path.join(BASE_DIR, 'uploads'))
    DATA_FOLDER = os.getenv('DATA_FOLDER', os.path.join(BASE_DIR, 'data'))
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    HIGH_HOURS_THRESHOLD = float(os.getenv('HIGH_HOURS_THRESHOLD', '60'))
    GENERATED_BY = os.getenv('GENERATED_BY', 'Administrator')
