import matplotlib.pyplot as plt
from matplotlib.animation import FuncAnimation
from matplotlib.colors import LinearSegmentedColormap
import numpy as np

from taxifleet.models.taxi import TaxiState
from taxifleet.simulation.simulation import FleetSimulation

STATE_COLORS = {
    TaxiState.AVAILABLE: 'green',
    TaxiState.ASSIGNED: 'yellow',
    TaxiState.GOING_TO_PICKUP: 'orange',
    TaxiState.PASSENGER_ABOARD: 'deepskyblue',
    TaxiState.WAITING: 'red',
}


class FleetVisualization:
    def __init__(self, simulation: FleetSimulation, update_interval: int = 50, dt: float = 0.1):
        self.sim = simulation
        self.update_interval = update_interval
        self.dt = dt
        self.history_window = 60.0  # Seconds of statistics to keep on screen

        # Setup the figure with two subplots side by side
        self.fig = plt.figure(figsize=(20, 8))
        self.map_ax = self.fig.add_subplot(121)  # Left subplot for map
        self.stats_ax = self.fig.add_subplot(122)  # Right subplot for statistics
        self.fig.set_facecolor('white')

        # Initialize statistics tracking
        self.times = []
        self.series = {
            'available': [],
            'busy': [],
            'braking': [],
            'waiting passengers': [],
            'completed': [],
            'cancelled': [],
        }

        colors = [(1, 1, 1), (0.9, 0.9, 1), (0.7, 0.7, 1), (0.5, 0.5, 1)]
        self.density_cmap = LinearSegmentedColormap.from_list('density', colors)

        if self.sim.demand is not None:
            self.setup_density_plot()
        self.plot_road_network()

        self.taxi_plots = {}
        self.setup_taxi_plots()

        self.passenger_plot = self.map_ax.scatter(
            [], [], marker='x', c='black', s=100,
            label='waiting passengers', zorder=4
        )
        self.setup_legend()
        self.setup_stats_plot()

        self.anim = FuncAnimation(
            self.fig, self.update, interval=update_interval,
            frames=None, blit=False, cache_frame_data=False
        )

    @property
    def map_extent(self) -> float:
        return self.sim.road_network.number_of_nodes()**0.5 - 1

    def setup_density_plot(self):
        # Create grid for density visualization
        x = np.linspace(0, self.map_extent, 100)
        y = np.linspace(0, self.map_extent, 100)
        X, Y = np.meshgrid(x, y)
        positions = np.vstack([X.ravel(), Y.ravel()]).T

        Z = np.array([self.sim.demand.get_density(pos) for pos in positions])

        # Normalize and reshape
        Z = Z.reshape(X.shape)
        span = Z.max() - Z.min()
        if span > 0:
            Z = (Z - Z.min()) / span

        self.density_plot = self.map_ax.imshow(
            Z, extent=[x.min(), x.max(), y.min(), y.max()], origin='lower',
            cmap=self.density_cmap, alpha=0.3, zorder=1
        )

    def plot_road_network(self):
        for edge in self.sim.road_network.edges():
            x = [edge[0][0], edge[1][0]]
            y = [edge[0][1], edge[1][1]]
            self.map_ax.plot(x, y, 'gray', linewidth=0.5, alpha=0.5, zorder=2)

    def setup_taxi_plots(self):
        # One scatter plot per taxi state
        for state in TaxiState:
            self.taxi_plots[state] = self.map_ax.scatter(
                [], [], c=STATE_COLORS[state], label=state.value,
                s=100, zorder=3
            )

    def setup_legend(self):
        self.map_ax.legend(loc='upper right')
        self.map_ax.set_title('Taxi Fleet Simulation')
        self.map_ax.set_xlabel('X coordinate')
        self.map_ax.set_ylabel('Y coordinate')

    def setup_stats_plot(self):
        """Initialize the statistics subplot"""
        self.stats_ax.set_title('Fleet Statistics')
        self.stats_ax.set_xlabel('Simulated time (s)')
        self.stats_ax.set_ylabel('Count')

        styles = ['g-', 'b-', 'r-', 'k-', 'c--', 'm--']
        self.lines = {}
        for (name, _), style in zip(self.series.items(), styles):
            self.lines[name], = self.stats_ax.plot([], [], style, label=name)

        self.stats_ax.legend()
        self.stats_ax.grid(True)
        self.stats_ax.set_xlim(0, self.history_window)
        self.stats_ax.set_ylim(0, max(len(self.sim.taxis), 1) * 1.1)

    def update_stats(self):
        """Record the current counters and redraw the statistics lines"""
        now = self.sim.current_time
        counts = self.sim.taxi_state_counts()
        self.times.append(now)
        self.series['available'].append(counts[TaxiState.AVAILABLE])
        self.series['busy'].append(counts[TaxiState.GOING_TO_PICKUP]
                                   + counts[TaxiState.PASSENGER_ABOARD])
        self.series['braking'].append(counts[TaxiState.WAITING])
        self.series['waiting passengers'].append(
            len([p for p in self.sim.passengers if p.is_waiting]))
        self.series['completed'].append(self.sim.stats.trips_completed)
        self.series['cancelled'].append(self.sim.stats.trips_cancelled)

        # Keep only the recent window
        while self.times and self.times[0] < now - self.history_window:
            self.times.pop(0)
            for values in self.series.values():
                values.pop(0)

        for name, values in self.series.items():
            self.lines[name].set_data(self.times, values)

        if self.times:
            self.stats_ax.set_xlim(max(0, now - self.history_window), max(now, 1e-6))
            max_count = max(max(values + [0]) for values in self.series.values())
            self.stats_ax.set_ylim(0, max(max_count, 1) * 1.1)

    def update(self, frame):
        """Update visualization for the current frame"""
        self.sim.step(self.dt)

        for state in TaxiState:
            taxis = [t for t in self.sim.taxis if t.state == state]
            if taxis:
                self.taxi_plots[state].set_offsets(np.array([t.position for t in taxis]))
            else:
                self.taxi_plots[state].set_offsets(np.empty((0, 2)))

        waiting = [p for p in self.sim.passengers if p.is_waiting and p.pickup is not None]
        if waiting:
            self.passenger_plot.set_offsets(np.array([p.pickup for p in waiting]))
        else:
            self.passenger_plot.set_offsets(np.empty((0, 2)))

        self.update_stats()

        return (tuple(self.taxi_plots.values())
                + (self.passenger_plot,)
                + tuple(self.lines.values()))

    def show(self):
        plt.show()
