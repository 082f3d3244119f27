# app.py - Momo House WhatsApp ordering bot
import logging
import threading
import time
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from config.settings import BotConfig
from messenger.handler import MessengerHandler
from utils.logging import install_global_exception_logging, setup_logging
from workflow.main import OrderingWorkflow

logger = logging.getLogger(__name__)

WHATSAPP_OBJECT = 'whatsapp_business_account'
MESSENGER_OBJECT = 'page'


def start_context_cleanup(workflow: OrderingWorkflow, interval_seconds: int) -> threading.Thread:
    """Periodically drop expired conversation contexts"""

    def cleanup_worker():
        while True:
            time.sleep(interval_seconds)
            try:
                cleaned = workflow.cleanup_expired_contexts()
                if cleaned > 0:
                    logger.info(f"🧹 Background cleanup: removed {cleaned} expired contexts")
            except Exception as e:
                logger.error(f"❌ Background cleanup error: {e}")

    cleanup_thread = threading.Thread(target=cleanup_worker, name='context-cleanup', daemon=True)
    cleanup_thread.start()
    logger.info("🔄 Background context cleanup started")
    return cleanup_thread


def create_flask_app(config: Optional[Dict[str, Any]] = None,
                     workflow: Optional[OrderingWorkflow] = None,
                     start_background_tasks: bool = True) -> Flask:
    """Create the Flask app; ``config`` and ``workflow`` may be injected for tests"""
    app = Flask(__name__)

    if config is None:
        config_manager = BotConfig()
        config_manager.print_safe_debug_info()
        config_manager.validate_config()
        config = config_manager.get_config_dict()
        logger.info("✅ Configuration loaded")

    if workflow is None:
        workflow = OrderingWorkflow(config)

    messenger = MessengerHandler(config.get('messenger_page_token'))

    app.config['WORKFLOW'] = workflow

    if start_background_tasks:
        start_context_cleanup(workflow, config.get('context_cleanup_interval', 1800))

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        if isinstance(error, HTTPException):
            return error
        logger.exception(f"❌ Unhandled error on {request.path}: {error}")
        return jsonify({'status': 'error', 'message': 'Internal server error'}), 500

    @app.route('/')
    def home():
        return jsonify({
            'service': 'Momo House WhatsApp Bot',
            'status': 'running',
            'components': workflow.get_status(),
        }), 200

    @app.route('/webhook', methods=['GET'])
    def verify_webhook():
        mode = request.args.get('hub.mode')
        token = request.args.get('hub.verify_token')
        challenge = request.args.get('hub.challenge')

        result = workflow.whatsapp.verify_webhook(mode, token, challenge)
        return (result, 200) if result else ("Verification failed", 403)

    @app.route('/webhook', methods=['POST'])
    def handle_webhook():
        data = request.get_json(silent=True) or {}
        object_type = data.get('object')

        if object_type == WHATSAPP_OBJECT:
            processed = workflow.process_webhook(data)
            logger.info(f"✅ Webhook delivery handled ({processed} message(s))")
            return jsonify({'status': 'success', 'processed': processed}), 200

        if object_type == MESSENGER_OBJECT:
            events = messenger.handle_webhook(data)
            return jsonify({'status': 'success', 'processed': events}), 200

        logger.info(f"Ignoring webhook object: {object_type}")
        return jsonify({'status': 'ignored'}), 200

    @app.route('/health', methods=['GET'])
    def health_check():
        health = workflow.health_check()
        status_code = 200 if health['status'] == 'ok' else 503
        return jsonify(health), status_code

    @app.route('/init-db', methods=['POST'])
    def init_db():
        stats = workflow.initialize_database()
        logger.info(f"🗄️ Database initialized: {stats}")
        return jsonify({'status': 'success', 'tables': stats}), 200

    @app.route('/simulate', methods=['POST'])
    def simulate():
        """Push a text or button id through the pipeline"""
        data = request.get_json(silent=True) or {}
        user_id = str(data.get('user_id') or data.get('phone_number') or '1234567890')
        message = data.get('message', '')
        button_id = data.get('button_id')

        if not message and not button_id:
            return jsonify({'status': 'error', 'message': 'message or button_id is required'}), 400

        response = workflow.simulate_message(
            user_id, message, button_id, data.get('customer_name', 'Test User')
        )
        return jsonify({
            'status': 'success',
            'simulation': {
                'input': {'user_id': user_id, 'message': message, 'button_id': button_id},
                'response': response
            }
        }), 200

    return app


def create_app():
    """Create app for WSGI (``gunicorn 'app:create_app()'``)"""
    config_manager = BotConfig()
    setup_logging(config_manager.log_level, config_manager.log_file)
    install_global_exception_logging()
    return create_flask_app()


if __name__ == '__main__':
    flask_app = create_app()
    settings = BotConfig()

    logger.info("🚀 Starting Momo House WhatsApp Bot...")
    logger.info(f"🌐 Server starting on port {settings.port}")
    logger.info(f"🔗 Health Check: http://localhost:{settings.port}/health")

    flask_app.run(
        host=settings.host,
        port=settings.port,
        debug=False,
        threaded=True
    )
