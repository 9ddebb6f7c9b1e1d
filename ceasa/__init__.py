"""Flask application factory."""
import os

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from ceasa.database import init_db


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Initialize Sentry for error tracking in production
    if app.config.get('SENTRY_DSN') and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=app.config['SENTRY_DSN'],
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
            environment=app.config.get('ENV'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Initialize Redis Cache
    from ceasa.services.cache_service import init_cache
    init_cache(app)

    # Setup Prometheus metrics instrumentation
    from ceasa.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: Enable ProxyFix for HTTPS behind Nginx reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    # Initialize database
    init_db(app)

    # Multi-Tenant: Load user and tenant context before each request
    from ceasa.middleware import load_user_and_tenant

    @app.before_request
    def before_request_handler():
        """Load user and tenant context for each request."""
        load_user_and_tenant()

    # Error Handlers
    from ceasa.exceptions import CeasaError

    @app.errorhandler(CeasaError)
    def handle_ceasa_error(error):
        """Handle application exceptions as JSON."""
        if error.status_code >= 500:
            app.logger.error(f"CeasaError [{error.status_code}]: {error.message}", exc_info=error)
        else:
            app.logger.warning(f"CeasaError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'status': 'error', 'message': error.description}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.exception(f"Unhandled Exception: {error}")
        return jsonify({'status': 'error', 'message': 'Erro interno do servidor'}), 500

    # Register blueprints
    from ceasa.blueprints.main import main_bp
    from ceasa.blueprints.metrics import metrics_bp
    from ceasa.blueprints.purchases import purchases_bp
    from ceasa.blueprints.manifests import manifests_bp
    from ceasa.blueprints.packaging import packaging_bp
    from ceasa.blueprints.returns import returns_bp
    from ceasa.blueprints.titles import titles_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(metrics_bp)
    app.register_blueprint(purchases_bp)
    app.register_blueprint(manifests_bp)
    app.register_blueprint(packaging_bp)
    app.register_blueprint(returns_bp)
    app.register_blueprint(titles_bp)

    # Register CLI commands
    from ceasa.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
