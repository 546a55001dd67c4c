from bitterscan import create_app

# Dashboard API; the serverless host picks up the module-level 'app'
app = create_app()

if __name__ == "__main__":
    app.run(port=5000, debug=app.config.get('DEBUG', False))
