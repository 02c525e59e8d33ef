from mangum import Mangum

from armadollars.api import app

app.root_path = "/api"

handler = Mangum(app)
