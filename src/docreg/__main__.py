from docreg.cli import app

app(prog_name="docreg")
