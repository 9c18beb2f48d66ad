from app.dashflow import create_app

app = create_app()
