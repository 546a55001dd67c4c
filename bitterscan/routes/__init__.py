# Blueprints
