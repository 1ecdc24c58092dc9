import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./vervidflow.db")

# Frontend base URL (used for CORS defaults)
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "VervidFlow <noreply@vervidflow.com>")
DEFAULT_ORGANIZATION_NAME = os.getenv("DEFAULT_ORGANIZATION_NAME", "VervidFlow")

# Twilio Configuration (platform account used for SMS / WhatsApp alerts)
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_FROM_NUMBER = os.getenv("TWILIO_FROM_NUMBER")  # E.164, e.g. +15551234567
TWILIO_WHATSAPP_FROM = os.getenv("TWILIO_WHATSAPP_FROM")  # E.164 number enabled for WhatsApp

# Shared secret for the scheduled alert processing endpoint
CRON_SECRET = os.getenv("CRON_SECRET")

# Alert dispatch
ALERT_DISPATCH_BATCH_SIZE = int(os.getenv("ALERT_DISPATCH_BATCH_SIZE", "50"))
ALERT_DISPATCH_INTERVAL_MINUTES = int(os.getenv("ALERT_DISPATCH_INTERVAL_MINUTES", "15"))
ALERT_CLAIM_TIMEOUT_MINUTES = int(os.getenv("ALERT_CLAIM_TIMEOUT_MINUTES", "10"))
