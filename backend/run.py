from cubetag import create_app, socketio

app = create_app()

if __name__ == '__main__':
    # Use SocketIO server to enable websockets in dev
    try:
        socketio.run(app, host='0.0.0.0', port=2220, debug=True)
    finally:
        with app.app_context():
            app.extensions['cubetag_scheduler'].stop()
            app.extensions['cubetag'].shutdown()
