# run.py
import os
from certanchor.app import create_app

# Starts the Flask development server without relying on `flask run` discovery.

if __name__ == "__main__":
    os.environ.setdefault('FLASK_APP', 'certanchor.app')

    app = create_app()

    print("=" * 60)
    print(">>> Starting CertAnchor verification service...")
    mode = "blockchain + registry" if app.extensions.get("chain_client") else "registry only"
    print(f">>> Verification mode: {mode}")
    print("=" * 60)

    app.run(debug=True, host='0.0.0.0', port=5000)
