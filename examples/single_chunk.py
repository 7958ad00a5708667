from topomesh import mesh_compute

"""
Most minimal example: one 2x2 chunk, upsampled once
"""
elevations = [0.0, 0.2,
              0.4, 1.0]

buffers = mesh_compute(elevations, 2, 2, tessellation_factor=2)

print(f"\n Vertices ({buffers.vertex_count}):")
for p in buffers.points:
    print('  ', p)

print("\n Normals:")
for n in buffers.vertex_normals[::3]:
    print('  ', n)

print("\n Colors:")
for c in buffers.vertex_colors:
    print('  ', c)
