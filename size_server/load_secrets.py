import os
from dotenv import load_dotenv

load_dotenv()

client_id = os.getenv("TWITCH_CLIENT_ID")
client_secret = os.getenv("TWITCH_CLIENT_SECRET")
sweep_interval_minutes = int(os.getenv("SWEEP_INTERVAL_MINUTES", "60"))
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
random_seed = int(os.environ["RANDOM_SEED"]) if os.getenv("RANDOM_SEED") else None

if __name__ == "__main__":
    print(client_id, sweep_interval_minutes, log_level, random_seed)
