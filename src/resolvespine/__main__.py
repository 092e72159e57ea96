from resolvespine.cli.app import app

app()
