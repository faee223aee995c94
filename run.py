# /run.py
import os

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from recordguard import create_app

app = create_app(os.getenv('FLASK_CONFIG'))

if __name__ == '__main__':
    app.run(
        host=os.getenv('FLASK_RUN_HOST', '127.0.0.1'),
        port=int(os.getenv('FLASK_RUN_PORT', 5000)),
        debug=app.config.get('DEBUG', False)
    )
