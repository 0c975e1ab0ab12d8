# run.py
from flask import jsonify

from fleet_compliance import create_app

app = create_app()


@app.route('/')
def index():
    return jsonify({"service": "fleet-compliance", "ok": True})


if __name__ == '__main__':
    app.run(debug=True, host="0.0.0.0")
