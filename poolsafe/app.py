# module poolsafe.app
from poolsafe.app_setup.factory import create_app

# App globale
app = create_app()
