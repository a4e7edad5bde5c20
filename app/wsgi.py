from app.pmms import create_app

app = create_app()
