from letterstudio import create_app

app = create_app()
