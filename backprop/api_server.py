"""
api_server.py
~~~~~~~~~~~~~

Flask-based REST API server with WebSocket support for network training.

This module provides endpoints for:
- Creating networks from an explicit topology or a named scenario
- Running predictions
- Training networks in the background with real-time progress updates
- Inspecting weights and plotting the loss history

The server uses:
- Flask for REST API endpoints
- Flask-SocketIO for WebSocket communication
- Gevent for async background training tasks
- Matplotlib for rendering loss curves

Networks are kept in memory only.
"""

import os
import sys
import uuid
import base64
import logging
from io import BytesIO
from typing import Any, Dict, List, Optional, Tuple

import gevent
import numpy as np
from flask import Flask, request, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO

# Use non-GUI backend for matplotlib (required for server environments)
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from backprop.activations import Activation
from backprop.exceptions import BackpropError
from backprop.scenarios import SCENARIOS, get_scenario
from backprop.topology import NetworkBuilder
from backprop.trainer import Trainer

# ============================================================================
# LOGGING SETUP
# ============================================================================

def configure_logging() -> None:
    """
    Set up logging based on environment.

    - In production: quiet third-party loggers, keep engine logs at INFO
    - In development: show Socket.IO logs as well
    """
    log_level_str = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, log_level_str, logging.INFO)
    is_production = os.getenv('FLASK_ENV') == 'production'

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if is_production:
        for logger_name in ['socketio', 'engineio', 'engineio.server',
                            'socketio.server', 'werkzeug']:
            logging.getLogger(logger_name).setLevel(logging.WARNING)
        logging.getLogger('backprop').setLevel(logging.INFO)
    else:
        logging.getLogger('socketio').setLevel(logging.INFO)
        logging.getLogger('engineio').setLevel(logging.INFO)


configure_logging()
logger = logging.getLogger(__name__)

# ============================================================================
# FLASK APP SETUP
# ============================================================================

app = Flask(__name__)
CORS(app, resources={r"/*": {"origins": "*"}})

is_production = os.getenv('FLASK_ENV') == 'production'

# SocketIO pushes training progress to connected clients
socketio = SocketIO(
    app,
    cors_allowed_origins="*",
    async_mode='gevent',
    logger=not is_production,
    engineio_logger=not is_production,
    ping_timeout=60,
    ping_interval=25
)

# ============================================================================
# GLOBAL STATE
# ============================================================================

# Networks currently loaded in memory: {network_id: network_info}
active_networks: Dict[str, Dict[str, Any]] = {}

# Training jobs being tracked: {job_id: job_info}
training_jobs: Dict[str, Dict[str, Any]] = {}

# Job statuses that still hold the network's trainer
ACTIVE_JOB_STATUSES = ('pending', 'training')


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def array_to_float_list(array: np.ndarray) -> List[float]:
    """Convert a numpy array to a list of floats (for JSON serialization)."""
    return [float(val) for val in np.asarray(array).flatten()]


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def validate_matrix(value: Any, name: str) -> Optional[str]:
    """Return an error message if value is not a non-empty list of number lists."""
    if not isinstance(value, list) or not value:
        return f'{name} must be a non-empty list of lists'
    for row in value:
        if not isinstance(row, list) or not all(is_number(v) for v in row):
            return f'{name} must contain only lists of numbers'
    return None


def describe_network(network_id: str) -> Dict[str, Any]:
    info = active_networks[network_id]
    return {
        'network_id': network_id,
        'architecture': info['trainer'].network.sizes,
        'activations': [a.value for a in info['trainer'].network.activations],
        'learning_rate': info['trainer'].learning_rate,
        'scenario': info.get('scenario'),
        'trained': info['trained'],
        'epochs_trained': len(info['trainer'].loss_history),
        'loss': info['loss']
    }


def create_loss_plot(history: List[np.ndarray], network_id: str) -> str:
    """
    Create a base64-encoded PNG of the loss history.

    Args:
        history: Loss vector of every epoch
        network_id: Used in the plot title

    Returns:
        Base64-encoded PNG image string
    """
    losses = np.array([np.asarray(loss) for loss in history])

    plt.figure(figsize=(5, 3))
    for output_index in range(losses.shape[1]):
        plt.plot(losses[:, output_index], label=f'output {output_index}')
    plt.yscale('log')
    plt.xlabel('epoch')
    plt.ylabel('loss')
    plt.title(f"Loss for {network_id[:8]}")
    plt.legend()

    # Save image to a bytes buffer instead of a file
    buffer = BytesIO()
    plt.savefig(buffer, format='png', bbox_inches='tight')
    buffer.seek(0)
    img_base64 = base64.b64encode(buffer.getvalue()).decode('utf-8')
    plt.close()

    return img_base64


def build_trainer_from_request(data: Dict[str, Any]) -> Tuple[Trainer, Dict[str, Any]]:
    """
    Build a trainer from a create-network request body.

    Returns:
        The trainer and extra metadata to store with the network

    Raises:
        ValueError: If the request describes an invalid network
    """
    scenario_name = data.get('scenario')
    if scenario_name is not None:
        seed = data.get('seed')
        if seed is not None and not isinstance(seed, int):
            raise ValueError('seed must be an integer')
        scenario = get_scenario(scenario_name, seed=seed)
        return scenario.create_trainer(), {
            'scenario': scenario.name,
            'samples': scenario.samples,
            'observed': scenario.observed,
            'default_epochs': scenario.epochs
        }

    input_size = data.get('input_size')
    layer_sizes = data.get('layer_sizes')
    if not is_positive_int(input_size):
        raise ValueError('input_size must be a positive integer')
    if not isinstance(layer_sizes, list) or not layer_sizes:
        raise ValueError('Invalid architecture. Must have at least 1 layer.')
    if not all(is_positive_int(size) for size in layer_sizes):
        raise ValueError('layer_sizes must contain positive integers')

    activations = data.get('activations', [Activation.UNIT.value] * len(layer_sizes))
    if not isinstance(activations, list):
        raise ValueError('activations must be a list of activation names')

    learning_rate = data.get('learning_rate', 0.01)
    if not is_number(learning_rate) or learning_rate <= 0:
        raise ValueError('learning_rate must be a positive number')

    builder = NetworkBuilder(input_size, layer_sizes, activations)

    bounds = data.get('randomize')
    if bounds is not None:
        if (not isinstance(bounds, list) or len(bounds) != 2
                or not all(is_number(b) for b in bounds)):
            raise ValueError('randomize must be a [low, high] pair of numbers')
        builder.randomize_weights(bounds[0], bounds[1])

    return builder.create_trainer(learning_rate), {'scenario': None}


# ============================================================================
# API ENDPOINTS
# ============================================================================

@app.route('/api/status', methods=['GET'])
def get_status():
    """
    Return server status and statistics.

    Counts only training jobs that are pending or running.
    """
    active_training = sum(
        1 for job in training_jobs.values()
        if job.get('status') in ACTIVE_JOB_STATUSES
    )

    return jsonify({
        'status': 'online',
        'active_networks': len(active_networks),
        'training_jobs': active_training,
        'scenarios': list(SCENARIOS)
    }), 200


@app.route('/api/networks', methods=['POST'])
def create_network():
    """
    Create a new neural network.

    Request body, either a scenario:
        {'scenario': 'multiplier', 'seed': 7}
    or an explicit topology:
        {
            'input_size': 2,
            'layer_sizes': [4, 1],
            'activations': ['softplus', 'unit'],
            'learning_rate': 0.05,
            'randomize': [-0.3, 0.3]
        }

    Returns:
        JSON with network_id, architecture, and status
    """
    data = request.get_json(silent=True) or {}

    try:
        trainer, extra = build_trainer_from_request(data)
    except (ValueError, BackpropError) as e:
        logger.warning(f"Invalid network requested: {e}")
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.exception(f"Error creating network: {e}")
        return jsonify({'error': f'Failed to create network: {str(e)}'}), 500

    network_id = str(uuid.uuid4())
    active_networks[network_id] = {
        'trainer': trainer,
        'trained': False,
        'loss': None,
        **extra
    }

    logger.info(f"Created network {network_id} with architecture {trainer.network.sizes}")

    return jsonify({
        'network_id': network_id,
        'architecture': trainer.network.sizes,
        'scenario': extra.get('scenario'),
        'status': 'created'
    }), 201


@app.route('/api/networks', methods=['GET'])
def list_networks():
    """List all networks held in memory."""
    networks = [describe_network(nid) for nid in active_networks]
    logger.debug(f"Listing {len(networks)} networks")
    return jsonify({'networks': networks}), 200


@app.route('/api/networks/<network_id>', methods=['GET'])
def get_network(network_id: str):
    """Return a network's metadata together with its weights and biases."""
    if network_id not in active_networks:
        logger.warning(f"Details requested for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    network = active_networks[network_id]['trainer'].network
    details = describe_network(network_id)
    details['weights'] = [w.tolist() for w in network.weights]
    details['biases'] = [b[:, 0].tolist() for b in network.biases]
    return jsonify(details), 200


@app.route('/api/networks/<network_id>', methods=['DELETE'])
def delete_network_endpoint(network_id: str):
    """Delete a network from memory."""
    if network_id not in active_networks:
        logger.warning(f"Delete attempted for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    del active_networks[network_id]
    logger.info(f"Deleted network {network_id}")

    return jsonify({'network_id': network_id, 'deleted': True}), 200


@app.route('/api/networks', methods=['DELETE'])
def delete_all_networks():
    """Delete all networks from memory."""
    deleted_count = len(active_networks)
    active_networks.clear()

    logger.info(f"Deleted all networks: {deleted_count} total")

    return jsonify({
        'deleted_count': deleted_count,
        'message': f'Successfully deleted {deleted_count} network(s)'
    }), 200


@app.route('/api/networks/<network_id>/predict', methods=['POST'])
def predict(network_id: str):
    """
    Run a forward pass.

    Request body:
        {'inputs': [0.5, 0.25]}
    """
    if network_id not in active_networks:
        logger.warning(f"Prediction requested for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    data = request.get_json(silent=True) or {}
    inputs = data.get('inputs')
    if not isinstance(inputs, list) or not all(is_number(v) for v in inputs):
        return jsonify({'error': 'inputs must be a list of numbers'}), 400

    network = active_networks[network_id]['trainer'].network
    try:
        output = network.predict(inputs)
    except IndexError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({
        'network_id': network_id,
        'inputs': inputs,
        'output': array_to_float_list(output),
        'layer_outputs': [array_to_float_list(o) for o in network.layer_outputs]
    }), 200


@app.route('/api/networks/<network_id>/train', methods=['POST'])
def train_network(network_id: str):
    """
    Start training a network in the background.

    Request body (all optional for scenario networks):
        {
            'epochs': 500,
            'samples': [[0], [1]],
            'observed': [[0.3], [0.6]],
            'learning_rate': 0.1
        }

    Returns:
        JSON with job_id, network_id, and status
    """
    if network_id not in active_networks:
        logger.warning(f"Training requested for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    info = active_networks[network_id]
    data = request.get_json(silent=True) or {}
    samples = data.get('samples', info.get('samples'))
    observed = data.get('observed', info.get('observed'))
    epochs = data.get('epochs', info.get('default_epochs', 100))
    learning_rate = data.get('learning_rate', info['trainer'].learning_rate)

    # Validate training parameters
    if samples is None or observed is None:
        return jsonify({'error': 'samples and observed are required'}), 400
    for value, name in ((samples, 'samples'), (observed, 'observed')):
        error = validate_matrix(value, name)
        if error:
            return jsonify({'error': error}), 400
    if len(samples) != len(observed):
        return jsonify({'error': 'samples and observed must have the same length'}), 400
    if not is_positive_int(epochs):
        return jsonify({'error': 'epochs must be a positive integer'}), 400
    if not is_number(learning_rate) or learning_rate <= 0:
        return jsonify({'error': 'learning_rate must be a positive number'}), 400

    for running_id, job_info in training_jobs.items():
        if job_info['network_id'] == network_id and job_info.get('status') in ACTIVE_JOB_STATUSES:
            logger.warning(
                f"Training requested for network {network_id} while job {running_id} is running"
            )
            return jsonify({
                'error': 'Network is already training',
                'job_id': running_id
            }), 409

    job_id = str(uuid.uuid4())

    training_jobs[job_id] = {
        'network_id': network_id,
        'status': 'pending',
        'progress': 0,
        'epochs': epochs
    }

    logger.info(
        f"Created training job {job_id} for network {network_id}: "
        f"epochs={epochs}, samples={len(samples)}, lr={learning_rate}"
    )

    # Run training in background so we can return immediately
    socketio.start_background_task(
        train_network_task,
        network_id, job_id, samples, observed, epochs, learning_rate
    )

    return jsonify({
        'job_id': job_id,
        'network_id': network_id,
        'status': 'training_started'
    }), 202


def train_network_task(
    network_id: str,
    job_id: str,
    samples: List[List[float]],
    observed: List[List[float]],
    epochs: int,
    learning_rate: float
) -> None:
    """
    Background task that trains a network.

    Sends progress updates via WebSocket as training progresses. The job
    entry stays in memory with its final status until it is cleaned up.
    The learning rate applies to this job only; the trainer's own rate is
    restored afterwards.
    """
    info = active_networks[network_id]
    trainer = info['trainer']
    previous_learning_rate = trainer.learning_rate
    trainer.learning_rate = learning_rate
    report_every = max(1, epochs // 100)

    def on_epoch_complete(data: Dict[str, Any]) -> None:
        """Called after each training epoch to record and publish progress."""
        progress = (data['epoch'] / data['total_epochs']) * 100

        training_jobs[job_id]['status'] = 'training'
        training_jobs[job_id]['progress'] = progress
        training_jobs[job_id]['loss'] = data['loss']

        if data['epoch'] % report_every == 0 or data['epoch'] == data['total_epochs']:
            socketio.emit('training_update', {
                'job_id': job_id,
                'network_id': network_id,
                'epoch': data['epoch'],
                'total_epochs': data['total_epochs'],
                'loss': data['loss'],
                'elapsed_time': data['elapsed_time'],
                'progress': progress
            })

    def yield_to_other_tasks():
        gevent.sleep(0)

    try:
        logger.info(f"Starting training for job {job_id}")

        history = trainer.train(
            samples,
            observed,
            epochs,
            callback=on_epoch_complete,
            yield_func=yield_to_other_tasks
        )
        final_loss = history[-1].tolist()

        # The network may have been deleted while training
        info['trained'] = True
        info['loss'] = final_loss

        training_jobs[job_id]['status'] = 'completed'
        training_jobs[job_id]['loss'] = final_loss
        training_jobs[job_id]['progress'] = 100

        logger.info(f"Training completed for job {job_id}: loss {final_loss}")

        socketio.emit('training_complete', {
            'job_id': job_id,
            'network_id': network_id,
            'status': 'completed',
            'loss': final_loss,
            'progress': 100
        })
        gevent.sleep(0)

    except Exception as e:
        logger.exception(f"Training failed for job {job_id}: {e}")

        training_jobs[job_id]['status'] = 'failed'
        training_jobs[job_id]['error'] = str(e)

        socketio.emit('training_error', {
            'job_id': job_id,
            'network_id': network_id,
            'status': 'failed',
            'error': str(e)
        })
        gevent.sleep(0)

    finally:
        trainer.learning_rate = previous_learning_rate


def cleanup_finished_training_jobs() -> int:
    """
    Remove completed or failed training jobs from memory.

    Returns:
        Number of jobs removed
    """
    finished_statuses = {'completed', 'failed'}
    jobs_to_remove = [
        job_id for job_id, job_info in training_jobs.items()
        if job_info.get('status') in finished_statuses
    ]

    for job_id in jobs_to_remove:
        del training_jobs[job_id]

    if jobs_to_remove:
        logger.info(f"Cleaned up {len(jobs_to_remove)} finished training job(s)")
    return len(jobs_to_remove)


@app.route('/api/training/<job_id>', methods=['GET'])
def get_training_status(job_id: str):
    """Get the current status of a training job."""
    if job_id in training_jobs:
        return jsonify(training_jobs[job_id]), 200

    logger.warning(f"Status requested for non-existent job: {job_id}")
    return jsonify({'error': 'Training job not found'}), 404


@app.route('/api/training/cleanup', methods=['POST'])
def cleanup_training_jobs_endpoint():
    """Drop finished training jobs from memory."""
    removed = cleanup_finished_training_jobs()
    return jsonify({'removed_count': removed}), 200


@app.route('/api/networks/<network_id>/loss_plot', methods=['GET'])
def get_loss_plot(network_id: str):
    """Return the network's loss history as a base64-encoded PNG."""
    if network_id not in active_networks:
        logger.warning(f"Loss plot requested for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    history = active_networks[network_id]['trainer'].loss_history
    if not history:
        return jsonify({'error': 'Network has not been trained yet'}), 404

    try:
        image = create_loss_plot(history, network_id)
    except Exception as e:
        logger.exception(f"Error plotting loss for {network_id}: {e}")
        return jsonify({'error': 'Internal server error'}), 500

    return jsonify({
        'network_id': network_id,
        'epochs': len(history),
        'image_data': image
    }), 200


# ============================================================================
# SERVER STARTUP
# ============================================================================

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 8000))
    is_cloud = bool(os.environ.get('PORT'))

    if is_cloud:
        logger.info(f"Starting server in production mode on port {port}")
    else:
        logger.info(f"Starting server at http://localhost:{port}/")

    try:
        socketio.run(
            app,
            host='0.0.0.0',
            port=port,
            debug=not is_cloud,
            use_reloader=False,
            allow_unsafe_werkzeug=True
        )
    except OSError as e:
        if "Address already in use" in str(e):
            logger.error(f"Port {port} is already in use.")
            sys.exit(1)
        else:
            raise
