"""
Web preview for the track network generator.
Generates regions on request and serves their image and statistics.
"""
from flask import Flask, request, jsonify
from datetime import datetime

from ..core.region_generator import RegionGeneratorFactory
from ..config.settings import create_default_config, create_preset_config, list_presets
from ..rendering.network_renderer import NetworkRenderer


MAX_REGION_CELLS = 48


class TrackNetworkWebApp:
    """Web application for previewing track networks."""

    def __init__(self):
        self.app = Flask(__name__)
        self.renderer = NetworkRenderer()
        self._setup_routes()

    def _setup_routes(self):
        """Setup Flask routes."""

        @self.app.route('/')
        def index():
            return jsonify({
                'name': 'tracknet',
                'endpoints': ['/api/health', '/api/presets', '/api/config/defaults',
                              '/api/cell/<x>/<z>', '/generate']
            })

        @self.app.route('/api/presets')
        def get_presets():
            """Get available configuration presets."""
            return jsonify(list_presets())

        @self.app.route('/api/config/defaults')
        def get_default_config():
            """Get the default configuration structure."""
            config = create_default_config(seed=0)
            return jsonify(config.to_dict())

        @self.app.route('/api/cell/<int(signed=True):x>/<int(signed=True):z>')
        def get_cell(x, z):
            """Describe the decision for one cell."""
            seed = request.args.get('seed', default=0, type=int)
            generator = RegionGeneratorFactory.create_default(seed=seed)
            return jsonify(generator.describe_cell(x, z))

        @self.app.route('/generate', methods=['POST'])
        def generate_region():
            """Generate a region with specified parameters."""
            try:
                data = request.get_json() or {}

                preset = data.get('preset')
                seed = data.get('seed')
                min_x = int(data.get('min_x', 0))
                min_z = int(data.get('min_z', 0))
                width = int(data.get('width', 16))
                depth = int(data.get('depth', 16))
                if width > MAX_REGION_CELLS or depth > MAX_REGION_CELLS:
                    return jsonify({
                        'success': False,
                        'error': f"Regions are limited to {MAX_REGION_CELLS} cells per side"
                    }), 400

                if preset and preset != 'custom':
                    config = create_preset_config(preset, seed=seed)
                else:
                    config = create_default_config(seed=seed)

                generator = RegionGeneratorFactory.create_generator(config)

                progress_updates = []
                def progress_callback(step_name, current, total):
                    progress_updates.append({
                        'step': step_name,
                        'current': current,
                        'total': total,
                        'progress': (current / total) * 100
                    })

                region = generator.generate_region(min_x, min_z, width, depth, progress_callback)
                response = {
                    'success': True,
                    'stats': region.get_statistics(),
                    'progress': progress_updates,
                    'generation_time': region.metadata.get('generation_time_seconds', 0)
                }
                if data.get('render', True):
                    response['image'] = self.renderer.render_region(region, dpi=int(data.get('dpi', 100)))
                return jsonify(response)

            except ValueError as e:
                return jsonify({
                    'success': False,
                    'error': str(e)
                }), 400

        @self.app.route('/api/health')
        def health_check():
            """Health check endpoint."""
            return jsonify({
                'status': 'healthy',
                'timestamp': datetime.now().isoformat(),
                'version': '1.0.0'
            })

    def run(self, host='0.0.0.0', port=5001, debug=True):
        """Run the web application."""
        print(f"Starting track network preview at http://{host}:{port}")
        self.app.run(host=host, port=port, debug=debug)


def create_app():
    """Factory function to create the Flask app."""
    web_app = TrackNetworkWebApp()
    return web_app.app


if __name__ == '__main__':
    web_app = TrackNetworkWebApp()
    web_app.run()
