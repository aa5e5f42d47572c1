from shelby_wizard.cli.app import app

app(prog_name="shelby-wizard")
