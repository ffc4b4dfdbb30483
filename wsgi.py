#!/usr/bin/env python3
import os

from dotenv import load_dotenv

load_dotenv()

from pgledger import create_app

app = create_app(os.environ.get("CONFIG_CLASS", "pgledger.config.ProductionConfig"))

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    app.run(host='0.0.0.0', port=port, debug=False)
