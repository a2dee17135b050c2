from seisview.cli import app

app()
