from salepilot import create_app

app = create_app()
