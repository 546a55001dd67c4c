from bitterscan import create_app

# Serverless function entry: every /api/* request is routed to this app
app = create_app()

if __name__ == "__main__":
    app.run()
