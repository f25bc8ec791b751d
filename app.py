import os
from stkpay import create_app
from stkpay.extensions import db

app = create_app(os.getenv('FLASK_ENV', 'development'))

@app.shell_context_processor
def make_shell_context():
    from stkpay.models import Transaction
    return {
        'db': db,
        'Transaction': Transaction
    }

if __name__ == '__main__':
    with app.app_context():
        db.create_all()
    app.logger.info(f"Server running in {app.config['MPESA_ENV']} mode on port {app.config['PORT']}")
    app.run(debug=app.config.get('DEBUG', False), host='0.0.0.0', port=app.config['PORT'])
